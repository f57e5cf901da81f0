"""
Value types returned by the parsers.

Every parse call builds these from scratch and hands them back; nothing is
cached between calls. Diagnostics travel with the result so callers can tell
a confident extraction from a best-effort one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ParsedClassEntry:
    """One timetable slot."""

    time: str
    subject: str
    room: str = ""
    day: Optional[str] = None
    duration_minutes: int = 45
    teacher: Optional[str] = None

    def to_dict(self) -> Dict:
        d: Dict = {"time": self.time, "subject": self.subject, "room": self.room}
        if self.day:
            d["day"] = self.day
        d["durationMinutes"] = self.duration_minutes
        if self.teacher:
            d["teacher"] = self.teacher
        return d


@dataclass
class SubstitutionEntry:
    """One row of a substitution plan."""

    id: str
    date: str
    class_name: str
    period: str
    subject: str
    original_teacher: Optional[str] = None
    substitute_teacher: Optional[str] = None
    room: Optional[str] = None
    note: Optional[str] = None

    def to_dict(self) -> Dict:
        d: Dict = {
            "id": self.id,
            "date": self.date,
            "class": self.class_name,
            "period": self.period,
            "subject": self.subject,
        }
        optional = {
            "originalTeacher": self.original_teacher,
            "substituteTeacher": self.substitute_teacher,
            "room": self.room,
            "note": self.note,
        }
        d.update({k: v for k, v in optional.items() if v})
        return d


# ──────────────────────────────────────────────────────────────────
#  Internal scoring artifacts
# ──────────────────────────────────────────────────────────────────

@dataclass
class TableCandidate:
    index: int
    rows: List[List[str]]
    score: int


@dataclass
class HeaderMap:
    """
    Weekday → zero-based column index of the chosen table.

    mode is 'confident' (≥3 weekdays in one row), 'partial' (fewer, with
    gaps filled) or 'assumed' (no weekday found; fixed Mon..Fri layout).
    """

    columns: Dict[str, int]
    row_index: int = 0
    mode: str = "confident"
    time_in_second_column: bool = False


# ──────────────────────────────────────────────────────────────────
#  Results and diagnostics
# ──────────────────────────────────────────────────────────────────

@dataclass
class ScheduleDiagnostics:
    tables_found: int = 0
    table_index: Optional[int] = None
    table_score: Optional[int] = None
    header_row: Optional[int] = None
    header_mode: Optional[str] = None
    rows_skipped: int = 0
    duplicates_removed: int = 0
    used_text_fallback: bool = False
    notes: List[str] = field(default_factory=list)

    @property
    def header_assumed(self) -> bool:
        return self.header_mode == "assumed"

    def to_dict(self) -> Dict:
        return {
            "tablesFound": self.tables_found,
            "tableIndex": self.table_index,
            "tableScore": self.table_score,
            "headerRow": self.header_row,
            "headerMode": self.header_mode,
            "rowsSkipped": self.rows_skipped,
            "duplicatesRemoved": self.duplicates_removed,
            "usedTextFallback": self.used_text_fallback,
            "notes": list(self.notes),
        }


@dataclass
class ScheduleResult:
    entries: List[ParsedClassEntry]
    diagnostics: ScheduleDiagnostics


@dataclass
class SubstitutionDiagnostics:
    tables_found: int = 0
    rows_seen: int = 0
    rows_skipped: int = 0
    rows_filtered: int = 0
    link_strategy: Optional[str] = None
    fetch_attempts: int = 0
    page_class: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "tablesFound": self.tables_found,
            "rowsSeen": self.rows_seen,
            "rowsSkipped": self.rows_skipped,
            "rowsFiltered": self.rows_filtered,
            "linkStrategy": self.link_strategy,
            "fetchAttempts": self.fetch_attempts,
            "pageClass": self.page_class,
            "notes": list(self.notes),
        }


@dataclass
class SubstitutionResult:
    entries: List[SubstitutionEntry]
    diagnostics: SubstitutionDiagnostics
    url: Optional[str] = None


@dataclass
class LinkResolution:
    """Outcome of the class-link resolver; url is None when unresolved."""

    url: Optional[str]
    strategy: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.url is not None


@dataclass
class ClassCheck:
    requested: str
    found: Optional[str]
    matches: bool


def dedupe_entries(entries: List[ParsedClassEntry]) -> tuple[List[ParsedClassEntry], int]:
    """
    Drop entries whose (time, subject) was already seen, keeping the first.

    Parallel sessions with the same subject and time in different rooms
    collapse into one; redundant markup is the usual cause.
    """
    seen: set[tuple[str, str]] = set()
    unique: List[ParsedClassEntry] = []
    for entry in entries:
        key = (entry.time, entry.subject)
        if key in seen:
            continue
        seen.add(key)
        unique.append(entry)
    return unique, len(entries) - len(unique)
