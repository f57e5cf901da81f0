"""
Parse a substitution plan page (Vertretungsplan) into SubstitutionEntry rows.

Two page kinds exist:
- class pages list the substitutions of one class and carry no class column;
  the requested class name is stamped onto every entry;
- daily pages list all classes; rows of other classes are filtered out.

Columns are found by keywords in the header row (German and English), so
column order and optional columns do not matter.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Dict, List, Tuple

from bs4 import BeautifulSoup  # type: ignore[import]

from .class_link import classes_match
from .models import SubstitutionDiagnostics, SubstitutionEntry, SubstitutionResult
from .schedule_html import table_rows

MIN_ROW_CELLS = 3

# Looked up in this order; a column claimed by one field is not reused
_COLUMN_TERMS: List[Tuple[str, Tuple[str, ...]]] = [
    ("class", ("klasse", "class")),
    ("date", ("datum", "date")),
    ("period", ("pos", "position", "stunde", "period")),
    ("subject", ("fach", "subject")),
    ("room", ("raum", "room")),
    ("substitute", ("vertretung", "vertretungslehrkraft", "substitute")),
    ("original", ("original", "lehrer", "teacher")),
    ("type", ("art", "type", "beschreibung")),
    ("message", ("mitteilung", "message", "note")),
    ("remark", ("bemerkung", "remark", "hinweis")),
    ("info", ("info",)),
]

_NOTE_FIELDS = ("type", "message", "remark", "info")


# ──────────────────────────────────────────────────────────────────
#  Dates
# ──────────────────────────────────────────────────────────────────

_DATE_PATTERNS = [
    re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4}|\d{2})(?!\d)"),
    re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})(?!\d)"),
    re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})(?!\d)"),
]
_ISO_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_SHORT_DATE_RE = re.compile(r"(?<!\d)(\d{1,2})\.(\d{1,2})\.(?!\d)")


def _make_date(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_date(text: str, today: date | None = None) -> str | None:
    """
    Parse a German plan date into 'YYYY-MM-DD'.

    Accepts DD.MM.YYYY, DD.MM.YY, DD-MM-YYYY, DD/MM/YYYY, ISO dates and
    'DD.MM.' (current year), optionally surrounded by a weekday name.
    """
    text = (text or "").strip()
    if not text:
        return None
    m = _ISO_DATE_RE.search(text)
    if m:
        return _make_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    for pattern in _DATE_PATTERNS:
        m = pattern.search(text)
        if m:
            year = m.group(3)
            full_year = int(year) + 2000 if len(year) == 2 else int(year)
            return _make_date(full_year, int(m.group(2)), int(m.group(1)))
    m = _SHORT_DATE_RE.search(text)
    if m:
        year = (today or date.today()).year
        return _make_date(year, int(m.group(2)), int(m.group(1)))
    return None


# ──────────────────────────────────────────────────────────────────
#  Columns
# ──────────────────────────────────────────────────────────────────

def map_columns(header: List[str]) -> Dict[str, int]:
    """Field name → column index for every field found in the header row."""
    keys = [h.lower() for h in header]
    columns: Dict[str, int] = {}
    taken: set[int] = set()
    for field, terms in _COLUMN_TERMS:
        idx = next(
            (i for term in terms for i, k in enumerate(keys) if term in k and i not in taken),
            None,
        )
        if idx is not None:
            columns[field] = idx
            taken.add(idx)
    return columns


def _cell(cells: List[str], columns: Dict[str, int], field: str) -> str:
    idx = columns.get(field)
    if idx is None or idx >= len(cells):
        return ""
    return cells[idx].strip()


def _row_has_class(row_class: str, class_name: str) -> bool:
    # Daily pages often list several classes in one cell: "12Fo-a, 12Fo-b"
    parts = [p for p in re.split(r"[,;/]", row_class) if p.strip()]
    return any(classes_match(p, class_name) for p in parts)


# ──────────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────────

def parse_substitution_plan(
    html: str,
    source_url: str,
    class_name: str = "",
    is_daily_page: bool = False,
    today: date | None = None,
) -> SubstitutionResult:
    """
    Extract substitution rows from every table of a plan page.

    :param source_url: URL the page came from; used to build entry ids.
    :param class_name: Requested class. On daily pages rows of other
        classes are dropped; on class pages it is applied to every entry.
    :param is_daily_page: True for pages listing all classes.
    :param today: Date used for rows without a date (default: today).
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()

    fallback_date = (today or date.today()).isoformat()
    diagnostics = SubstitutionDiagnostics()
    entries: List[SubstitutionEntry] = []

    tables = soup.find_all("table")
    diagnostics.tables_found = len(tables)
    for t_idx, table in enumerate(tables):
        rows = table_rows(table)
        if len(rows) < 2:
            continue
        columns = map_columns(rows[0])
        if not {"period", "subject", "substitute"} & columns.keys():
            diagnostics.notes.append(f"table #{t_idx}: no period/subject/substitute column")
            continue

        current_date = ""
        last_class = ""
        for r_idx, cells in enumerate(rows[1:], start=1):
            diagnostics.rows_seen += 1
            if len(cells) < MIN_ROW_CELLS:
                diagnostics.rows_skipped += 1
                continue

            row_class = ""
            if is_daily_page:
                row_class = _cell(cells, columns, "class") or last_class
                last_class = row_class
                if class_name and row_class and not _row_has_class(row_class, class_name):
                    diagnostics.rows_filtered += 1
                    continue

            date_cell = _cell(cells, columns, "date")
            if date_cell:
                parsed = parse_date(date_cell, today)
                if parsed:
                    current_date = parsed
                else:
                    diagnostics.notes.append(f"unreadable date {date_cell!r}")

            period = _cell(cells, columns, "period")
            subject = _cell(cells, columns, "subject")
            substitute = _cell(cells, columns, "substitute")
            if not (period or subject or substitute):
                diagnostics.rows_skipped += 1
                continue

            note = " | ".join(v for v in (_cell(cells, columns, f) for f in _NOTE_FIELDS) if v)
            entries.append(SubstitutionEntry(
                id=f"{source_url}-{t_idx}-{r_idx}",
                date=current_date or fallback_date,
                class_name=(row_class or class_name) if is_daily_page else class_name,
                period=period,
                subject=subject,
                original_teacher=_cell(cells, columns, "original") or None,
                substitute_teacher=substitute or None,
                room=_cell(cells, columns, "room") or None,
                note=note or None,
            ))

    return SubstitutionResult(entries=entries, diagnostics=diagnostics, url=source_url)
