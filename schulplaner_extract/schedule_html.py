"""
Parse a school timetable page (HTML) into a list of ParsedClassEntry.

Timetable pages come from many different programs and have no fixed schema.
The parser therefore works heuristically:

- every <table> is scored on how much it looks like a week grid
  (weekday names, clock times, class ids, subject abbreviations, rooms);
- in the best table the header row is located and weekdays are mapped to
  column indices, filling gaps for partially detected headers;
- each data row yields a start time and, per weekday column, a
  "subject teacher room" cell such as "Deu Schä 214";
- lesson durations are inferred from the next row's start time.

When no table produces an entry, the page text goes to the plain-text
parser instead. Plain text input (PDF pages) goes there directly.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag  # type: ignore[import]

from .models import (
    HeaderMap,
    ParsedClassEntry,
    ScheduleDiagnostics,
    ScheduleResult,
    TableCandidate,
    dedupe_entries,
)
from .schedule_text import parse_schedule_text
from .timeutil import infer_duration, normalize_time
from .vocabulary import (
    CLASS_ID_RE,
    ROOM_NUMBER_RE,
    ROOM_PREFIX_RE,
    ROOM_TOKEN_RE,
    SCHOOL_DAYS,
    SUBJECT_ABBREVIATION_RE,
    TIME_RE,
    WEEKDAY_RE,
    WEEKDAYS,
    expand_subject,
    normalize_weekday,
)

MIN_TABLE_SCORE = 10
HEADER_SCAN_ROWS = 5
CONFIDENT_HEADER_DAYS = 3

_ROW_DELIMITER_RE = re.compile(r"\s*(?:\||\t| {2,}|\s{3,})\s*")
_PUNCTUATION_RE = re.compile(r"^[\W_]+$")


# ──────────────────────────────────────────────────────────────────
#  Table extraction
# ──────────────────────────────────────────────────────────────────

def _clean_soup(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup


def _cell_text(cell: Tag) -> str:
    return " ".join(cell.get_text(separator=" ").split())


def row_cells(tr: Tag) -> List[str]:
    """
    Cell texts of a <tr>.

    Rows with broken markup (no <td>/<th> children) are split on their
    stripped text instead.
    """
    cells = tr.find_all(["td", "th"], recursive=False)
    if cells:
        return [_cell_text(c) for c in cells]
    text = tr.get_text(separator="|")
    parts = _ROW_DELIMITER_RE.split(text.strip())
    return [" ".join(p.split()) for p in parts if p.strip()]


def table_rows(table: Tag) -> List[List[str]]:
    # Only this table's own rows; nested tables are scored separately
    rows = [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]
    return [row_cells(tr) for tr in rows]


def extract_tables(soup: BeautifulSoup) -> List[List[List[str]]]:
    """All tables of the document as rows of cell texts, in document order."""
    return [table_rows(t) for t in soup.find_all("table")]


# ──────────────────────────────────────────────────────────────────
#  Table scoring
# ──────────────────────────────────────────────────────────────────

def score_table(rows: List[List[str]]) -> int:
    """
    Score how much a table looks like a weekly timetable.

    Weekday names (+10, +2 per occurrence) and clock times (+10, +5 more
    beyond five occurrences) dominate; class ids, subject abbreviations
    (+5 each) and room-like tokens (+3) add weaker evidence.
    """
    text = "\n".join(" | ".join(row) for row in rows)
    score = 0

    day_hits = len(WEEKDAY_RE.findall(text))
    if day_hits:
        score += 10 + 2 * day_hits

    time_hits = len(TIME_RE.findall(text))
    if time_hits:
        score += 10
        if time_hits > 5:
            score += 5

    if CLASS_ID_RE.search(text):
        score += 5
    if SUBJECT_ABBREVIATION_RE.search(text):
        score += 5
    if ROOM_TOKEN_RE.search(text):
        score += 3
    return score


def _best_candidate(tables: List[List[List[str]]]) -> Optional[TableCandidate]:
    best: Optional[TableCandidate] = None
    for i, rows in enumerate(tables):
        score = score_table(rows)
        if best is None or score > best.score:
            best = TableCandidate(index=i, rows=rows, score=score)
    return best


def pick_table(tables: List[List[List[str]]]) -> Optional[TableCandidate]:
    """The first highest-scoring table, or None when it scores below 10."""
    best = _best_candidate(tables)
    if best is None or best.score < MIN_TABLE_SCORE:
        return None
    return best


# ──────────────────────────────────────────────────────────────────
#  Header / day-column mapping
# ──────────────────────────────────────────────────────────────────

def _weekday_columns(row: List[str]) -> Dict[str, int]:
    columns: Dict[str, int] = {}
    for i, cell in enumerate(row):
        day = normalize_weekday(cell)
        if day and day not in columns:
            columns[day] = i
    return columns


def _fill_gaps(columns: Dict[str, int], width: int) -> Dict[str, int]:
    """
    Place school days missing from the header next to the nearest weekday
    that was found, since weekday columns are always contiguous.
    """
    located = {WEEKDAYS.index(day): col for day, col in columns.items()}
    if not located:
        return columns
    filled = dict(columns)
    used = set(filled.values())
    for idx, day in enumerate(SCHOOL_DAYS):
        if day in filled:
            continue
        nearest = min(located, key=lambda k: (abs(k - idx), k))
        col = located[nearest] + (idx - nearest)
        if col < 0 or col >= width or col in used:
            continue
        filled[day] = col
        used.add(col)
    return filled


def map_header(rows: List[List[str]]) -> HeaderMap:
    """
    Locate the header row and map weekday names to column indices.

    The first rows are searched for the one naming the most weekdays; at
    least three make it a confident header. Otherwise the first row naming
    any weekday is used. If no row names a weekday, row 0 is taken as the
    header with the layout [time, Montag .. Freitag] (mode 'assumed').
    """
    width = max((len(r) for r in rows), default=0)

    best_idx: Optional[int] = None
    best_days: Dict[str, int] = {}
    for i, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        days = _weekday_columns(row)
        if len(days) > len(best_days):
            best_idx, best_days = i, days

    if best_idx is not None and len(best_days) >= CONFIDENT_HEADER_DAYS:
        row_index, columns, mode = best_idx, best_days, "confident"
    else:
        found = next(
            ((i, _weekday_columns(r)) for i, r in enumerate(rows) if _weekday_columns(r)),
            None,
        )
        if found is None:
            columns = {day: i + 1 for i, day in enumerate(SCHOOL_DAYS)}
            return HeaderMap(columns=columns, row_index=0, mode="assumed")
        row_index, columns = found
        mode = "partial"

    columns = _fill_gaps(columns, width)
    return HeaderMap(
        columns=columns,
        row_index=row_index,
        mode=mode,
        time_in_second_column=min(columns.values()) >= 2,
    )


# ──────────────────────────────────────────────────────────────────
#  Row parsing
# ──────────────────────────────────────────────────────────────────

def _row_time(cells: List[str]) -> Tuple[Optional[str], int]:
    """Start time of a row and the column it was found in (0 or 1)."""
    for col in (0, 1):
        if col < len(cells):
            time = normalize_time(cells[col])
            if time:
                return time, col
    return None, 0


def _is_empty_cell(text: str) -> bool:
    text = text.strip()
    return len(text) < 2 or bool(_PUNCTUATION_RE.match(text))


def _strip_room_prefix(room: str) -> str:
    return ROOM_PREFIX_RE.sub("", room, count=1).strip()


def parse_cell(text: str) -> Tuple[str, Optional[str], str]:
    """
    Split a timetable cell into (subject, teacher, room).

    'Deu Schä 214' → ('Deutsch', 'Schä', '214');
    'Mat 101' → ('Mathematik', None, '101');
    'Spo Solm Halle-FBS' → ('Sport', 'Solm', 'Halle-FBS').
    """
    tokens = text.split()
    first = tokens[0]
    subject = expand_subject(first) or first
    teacher: Optional[str] = None
    room = ""
    if len(tokens) > 1:
        second = tokens[1]
        if ROOM_NUMBER_RE.match(_strip_room_prefix(second)):
            room = second
        elif ROOM_PREFIX_RE.match(second):
            room = " ".join(tokens[1:])
        else:
            teacher = second
            room = " ".join(tokens[2:])
    return subject, teacher, _strip_room_prefix(room)


def parse_rows(rows: List[List[str]], header: HeaderMap) -> Tuple[List[ParsedClassEntry], int]:
    """
    Turn the rows below the header into entries.

    :returns: (entries, number of rows skipped for lacking a time or cells)
    """
    timed: List[Tuple[str, int, List[str]]] = []
    skipped = 0
    for cells in rows[header.row_index + 1:]:
        if len(cells) < 2:
            skipped += 1
            continue
        time, time_col = _row_time(cells)
        if time is None:
            skipped += 1
            continue
        offset = 1 if time_col == 1 and not header.time_in_second_column else 0
        timed.append((time, offset, cells))

    day_columns = sorted(header.columns.items(), key=lambda kv: kv[1])
    entries: List[ParsedClassEntry] = []
    for i, (time, offset, cells) in enumerate(timed):
        next_time = timed[i + 1][0] if i + 1 < len(timed) else None
        for day, col in day_columns:
            col += offset
            if col >= len(cells) or _is_empty_cell(cells[col]):
                continue
            subject, teacher, room = parse_cell(cells[col])
            entries.append(ParsedClassEntry(
                time=time,
                subject=subject,
                room=room,
                day=day,
                duration_minutes=infer_duration(time, next_time, day),
                teacher=teacher,
            ))
    return entries, skipped


# ──────────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────────

def parse_schedule_html(html: str) -> ScheduleResult:
    """Table path first; the page text goes to the text parser if it yields nothing."""
    soup = _clean_soup(html)
    tables = extract_tables(soup)
    diagnostics = ScheduleDiagnostics(tables_found=len(tables))

    entries: List[ParsedClassEntry] = []
    best = _best_candidate(tables)
    if best is None:
        diagnostics.notes.append("no <table> in document")
    elif best.score < MIN_TABLE_SCORE:
        diagnostics.notes.append(
            f"best table #{best.index} scored {best.score}, below {MIN_TABLE_SCORE}"
        )
    else:
        diagnostics.table_index = best.index
        diagnostics.table_score = best.score
        header = map_header(best.rows)
        diagnostics.header_row = header.row_index
        diagnostics.header_mode = header.mode
        if header.mode == "assumed":
            diagnostics.notes.append(
                "no weekday header found; assumed columns [time, Montag..Freitag]"
            )
        entries, diagnostics.rows_skipped = parse_rows(best.rows, header)
        if not entries:
            diagnostics.notes.append("chosen table produced no entries")

    if not entries:
        diagnostics.used_text_fallback = True
        entries = parse_schedule_text(soup.get_text(separator="\n"))

    entries, diagnostics.duplicates_removed = dedupe_entries(entries)
    return ScheduleResult(entries=entries, diagnostics=diagnostics)


def parse_schedule(
    html: str | None = None,
    text: str | Iterable[str] | None = None,
    html_path: str | Path | None = None,
) -> ScheduleResult:
    """
    Parse a timetable from HTML or from plain text.

    :param html: Raw HTML of a timetable page.
    :param text: Extracted text, one string or one string per PDF page.
        Skips the table path entirely.
    :param html_path: Path to a saved HTML page (alternative to html).
    :returns: ScheduleResult with entries and diagnostics. Never raises for
        content it cannot understand; the entry list is empty instead.
    """
    if text is not None:
        diagnostics = ScheduleDiagnostics(used_text_fallback=True)
        entries, diagnostics.duplicates_removed = dedupe_entries(parse_schedule_text(text))
        return ScheduleResult(entries=entries, diagnostics=diagnostics)
    if html is None and html_path is not None:
        html = Path(html_path).read_text(encoding="utf-8", errors="ignore")
    if html is None:
        raise ValueError("Provide either html, text or html_path.")
    return parse_schedule_html(html)
