"""
Export timetable and substitution entries to ICS, CSV, and JSON.
"""
from __future__ import annotations

import csv
import hashlib
import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import List, Sequence, Union

import icalendar
import pytz

from .models import ParsedClassEntry, SubstitutionEntry
from .vocabulary import WEEKDAYS

# Timezone of the school calendar
TZ_BERLIN = "Europe/Berlin"

Record = Union[ParsedClassEntry, SubstitutionEntry]


def _first_date_for_weekday(term_start: date, day: str) -> date:
    """First date on or after term_start that falls on the German weekday."""
    offset = (WEEKDAYS.index(day) - term_start.weekday()) % 7
    return term_start + timedelta(days=offset)


def _uid(*parts: str) -> str:
    digest = hashlib.md5("-".join(parts).encode("utf-8")).hexdigest()
    return f"{digest}@schulplaner-extract"


def _lesson_event(
    entry: ParsedClassEntry, term_start: date, term_end: date | None, tz
) -> icalendar.Event | None:
    if not entry.day or entry.day not in WEEKDAYS:
        return None
    first = _first_date_for_weekday(term_start, entry.day)
    hour, minute = (int(p) for p in entry.time.split(":"))
    start = tz.localize(datetime(first.year, first.month, first.day, hour, minute))
    end = start + timedelta(minutes=entry.duration_minutes)

    event = icalendar.Event()
    event.add("uid", _uid(entry.subject, entry.day, entry.time, first.isoformat()))
    event.add("summary", entry.subject)
    if entry.teacher:
        event.add("description", f"Lehrkraft: {entry.teacher}")
    if entry.room:
        event.add("location", entry.room)
    event.add("dtstart", start)
    event.add("dtend", end)
    event.add("dtstamp", datetime.now(timezone.utc))
    if term_end:
        until_dt = datetime(term_end.year, term_end.month, term_end.day, 23, 59, 59, tzinfo=timezone.utc)
        event.add("rrule", {"freq": "weekly", "until": until_dt})
    else:
        event.add("rrule", {"freq": "weekly"})
    return event


def _substitution_event(entry: SubstitutionEntry) -> icalendar.Event | None:
    try:
        day = date.fromisoformat(entry.date)
    except ValueError:
        return None

    title = entry.subject or "Vertretung"
    summary = f"{title} ({entry.period}. Std.)" if entry.period else title
    lines = []
    if entry.class_name:
        lines.append(f"Klasse: {entry.class_name}")
    if entry.original_teacher:
        lines.append(f"Lehrkraft: {entry.original_teacher}")
    if entry.substitute_teacher:
        lines.append(f"Vertretung: {entry.substitute_teacher}")
    if entry.note:
        lines.append(entry.note)

    event = icalendar.Event()
    event.add("uid", _uid(entry.id))
    event.add("summary", summary)
    if lines:
        event.add("description", "\n".join(lines))
    if entry.room:
        event.add("location", entry.room)
    # All-day: period numbers carry no clock time
    event.add("dtstart", day)
    event.add("dtend", day + timedelta(days=1))
    event.add("dtstamp", datetime.now(timezone.utc))
    return event


def export_ics(
    records: Sequence[Record],
    out_path: str | Path,
    term_start: date | None = None,
    term_end: date | None = None,
    tz_name: str = TZ_BERLIN,
) -> int:
    """
    Export to iCalendar (.ics).

    Lessons with a weekday become weekly events from term_start (default:
    today) until term_end; lessons without a weekday are left out.
    Substitutions become all-day events on their date.

    :returns: Number of events written.
    """
    tz = pytz.timezone(tz_name)
    start = term_start or date.today()

    cal = icalendar.Calendar()
    cal.add("prodid", "-//Schulplaner Extract//DE")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("x-wr-calname", "Stundenplan")
    cal.add("x-wr-timezone", tz_name)

    count = 0
    for record in records:
        if isinstance(record, SubstitutionEntry):
            event = _substitution_event(record)
        else:
            event = _lesson_event(record, start, term_end, tz)
        if event is None:
            continue
        cal.add_component(event)
        count += 1

    Path(out_path).write_text(cal.to_ical().decode("utf-8"), encoding="utf-8")
    return count


def export_csv(records: Sequence[Record], out_path: str | Path) -> int:
    """Export to CSV; the header is the union of all keys in first-seen order."""
    rows = [r.to_dict() for r in records]
    if not rows:
        Path(out_path).write_text("", encoding="utf-8")
        return 0
    keys: List[str] = []
    for row in rows:
        keys.extend(k for k in row if k not in keys)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=keys)
        w.writeheader()
        w.writerows(rows)
    return len(rows)


def export_json(records: Sequence[Record], out_path: str | Path, diagnostics: dict | None = None) -> int:
    """Export to JSON: a list of entries, or {entries, diagnostics}."""
    entries = [r.to_dict() for r in records]
    payload = {"entries": entries, "diagnostics": diagnostics} if diagnostics is not None else entries
    Path(out_path).write_text(
        json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8"
    )
    return len(entries)


def export(
    records: Sequence[Record],
    out_path: str | Path,
    fmt: str,
    term_start: date | None = None,
    term_end: date | None = None,
    diagnostics: dict | None = None,
) -> int:
    """Export to the given format: ics, csv, or json."""
    fmt = fmt.lower()
    if fmt == "ics":
        return export_ics(records, out_path, term_start=term_start, term_end=term_end)
    if fmt == "csv":
        return export_csv(records, out_path)
    if fmt == "json":
        return export_json(records, out_path, diagnostics=diagnostics)
    raise ValueError(f"Unsupported format: {fmt}. Use ics, csv, or json.")
