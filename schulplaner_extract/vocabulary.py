"""
Static vocabulary shared by the schedule and substitution parsers:
weekday names, subject abbreviations, course-code prefixes, school-day end
times and the regexes used to spot times, rooms and class identifiers.
"""
from __future__ import annotations

import re
from typing import Dict, List, Tuple


# ──────────────────────────────────────────────────────────────────
#  Weekdays
# ──────────────────────────────────────────────────────────────────

WEEKDAYS: List[str] = [
    "Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag",
]

# The grid layout assumed when no header can be found: time, then Mon..Fri
SCHOOL_DAYS: List[str] = WEEKDAYS[:5]

_WEEKDAY_ABBREVIATIONS = {
    "mo": "Montag", "di": "Dienstag", "mi": "Mittwoch", "do": "Donnerstag",
    "fr": "Freitag", "sa": "Samstag", "so": "Sonntag",
}

WEEKDAY_RE = re.compile(r"(" + "|".join(WEEKDAYS) + r")", re.I)

# Leading abbreviation, optionally followed by a date: "Mo", "Mo.", "Mo 20.10."
_WEEKDAY_ABBREVIATION_RE = re.compile(r"^(" + "|".join(_WEEKDAY_ABBREVIATIONS) + r")\b", re.I)

# Last lesson of each day must not run past these
DAY_END_TIMES: Dict[str, str] = {
    "Montag": "15:00",
    "Dienstag": "14:15",
    "Mittwoch": "13:10",
    "Donnerstag": "13:10",
    "Freitag": "13:10",
}


def normalize_weekday(text: str) -> str | None:
    """
    Return the canonical weekday for a cell like 'Montag', 'MONTAG 20.10.'
    or an abbreviation such as 'Mo', 'Mo.' or 'Mo 20.10.'.
    """
    t = text.strip()
    if not t:
        return None
    m = WEEKDAY_RE.search(t)
    if m:
        return m.group(1).capitalize()
    m = _WEEKDAY_ABBREVIATION_RE.match(t)
    if m:
        return _WEEKDAY_ABBREVIATIONS[m.group(1).lower()]
    return None


# ──────────────────────────────────────────────────────────────────
#  Subjects
# ──────────────────────────────────────────────────────────────────

SUBJECT_ABBREVIATIONS: Dict[str, str] = {
    "Deu": "Deutsch",
    "Mat": "Mathematik",
    "Eng": "Englisch",
    "Che": "Chemie",
    "Bio": "Biologie",
    "Phy": "Physik",
    "Spo": "Sport",
    "Eth": "Ethik",
    "Pol": "Politik",
    "Gesch": "Geschichte",
    "Geo": "Geographie",
    "Kun": "Kunst",
    "Mus": "Musik",
    "Inf": "Informatik",
}

COURSE_CODE_PREFIXES: Tuple[str, ...] = ("TAF", "WPfU", "WPf", "WA", "Nawi")

SUBJECT_ABBREVIATION_RE = re.compile(
    r"\b(" + "|".join(SUBJECT_ABBREVIATIONS) + r")\b"
)

# Full-text subject names and aliases for the plain-text fallback
SUBJECT_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("Mathematik", re.compile(r"\b(?:Mathematik|Math|Mathe)\b", re.I)),
    ("Deutsch", re.compile(r"\b(?:Deutsch|German)\b", re.I)),
    ("Englisch", re.compile(r"\b(?:Englisch|English)\b", re.I)),
    ("Physik", re.compile(r"\b(?:Physik|Physics)\b", re.I)),
    ("Chemie", re.compile(r"\b(?:Chemie|Chemistry)\b", re.I)),
    ("Biologie", re.compile(r"\b(?:Biologie|Biology)\b", re.I)),
    ("Geschichte", re.compile(r"\b(?:Geschichte|History)\b", re.I)),
    ("Geographie", re.compile(r"\b(?:Geographie|Geography)\b", re.I)),
    ("Informatik", re.compile(r"\b(?:Informatik|Computer Science|IT)\b", re.I)),
    ("Sport", re.compile(r"\b(?:Sport|PE|Physical Education)\b", re.I)),
    ("Kunst", re.compile(r"\b(?:Kunst|Art)\b", re.I)),
    ("Musik", re.compile(r"\b(?:Musik|Music)\b", re.I)),
]


def expand_subject(token: str) -> str | None:
    """Expand an abbreviation ('Deu') or recognise a course code ('WPfU-Inf')."""
    if token in SUBJECT_ABBREVIATIONS:
        return SUBJECT_ABBREVIATIONS[token]
    if token.startswith(COURSE_CODE_PREFIXES):
        return token
    return None


# ──────────────────────────────────────────────────────────────────
#  Times, rooms, classes
# ──────────────────────────────────────────────────────────────────

TIME_RE = re.compile(r"(\d{1,2})[:.](\d{2})")

# Loose form used by normalize_time ("8:5"); skips dates like 20.10.2026
CLOCK_RE = re.compile(r"(?<!\d)(?<!\d\.)(\d{1,2})[:.](\d{1,2})(?!\d|\.\d)")

CLASS_ID_RE = re.compile(r"\b\d{1,2}\s?[A-Za-z]{1,3}(?:-[A-Za-z0-9])?\b")

ROOM_TOKEN_RE = re.compile(r"\b\d{3}\b|Halle|Saal")

ROOM_NUMBER_RE = re.compile(r"^[A-Z]?\d{3}[A-Za-z]?$")

ROOM_PREFIX_RE = re.compile(r"^(?:(?:Raum|Room|Saal)\b|R\.)\s*", re.I)

TEXT_ROOM_RE = re.compile(
    r"\b(?:Raum|Room|R\.?|Saal)\s*([A-Z]?\d+[A-Z]?)\b|\b([A-Z]\d{2,3})\b",
    re.I,
)
