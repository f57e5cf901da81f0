"""
Plain-text schedule parser.

Used for text extracted from PDF pages and as the fallback when an HTML page
has no usable timetable table. Works line by line: every line with a clock
time opens a slot, and the next few lines are searched for a subject and a
room.
"""
from __future__ import annotations

import re
from typing import Iterable, List

from .models import ParsedClassEntry
from .timeutil import normalize_time
from .vocabulary import CLOCK_RE, SUBJECT_PATTERNS, TEXT_ROOM_RE

LOOKAHEAD_LINES = 5
LOOSE_ROOM_LINES = 3


def _lines(text: str) -> List[str]:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"\n{3,}", "\n\n", text)
    return [line.strip() for line in text.split("\n") if line.strip()]


def _find_subject(line: str) -> str | None:
    for name, pattern in SUBJECT_PATTERNS:
        if pattern.search(line):
            return name
    return None


def _find_room(line: str) -> str | None:
    m = TEXT_ROOM_RE.search(line)
    if not m:
        return None
    return (m.group(1) or m.group(2) or "").strip() or None


def _strict_pass(lines: List[str]) -> List[ParsedClassEntry]:
    """Time, then a known subject (and maybe a room) within the lookahead."""
    entries: List[ParsedClassEntry] = []
    for i, line in enumerate(lines):
        time = normalize_time(line)
        if not time:
            continue
        subject = None
        room = None
        for check in lines[i:i + LOOKAHEAD_LINES]:
            if subject is None:
                subject = _find_subject(check)
            if room is None:
                room = _find_room(check)
            if subject and room:
                break
        if subject:
            entries.append(ParsedClassEntry(time=time, subject=subject, room=room or ""))
    return entries


def _loose_pass(lines: List[str]) -> List[ParsedClassEntry]:
    """The first words after the time become the subject."""
    entries: List[ParsedClassEntry] = []
    for i, line in enumerate(lines):
        m = CLOCK_RE.search(line)
        time = normalize_time(line)
        if not m or not time:
            continue
        words = [w for w in line[m.end():].split() if len(w) > 2]
        if not words:
            continue
        room = ""
        for check in lines[i:i + LOOSE_ROOM_LINES]:
            found = _find_room(check)
            if found:
                room = found
                break
        entries.append(ParsedClassEntry(time=time, subject=" ".join(words[:3]), room=room))
    return entries


def parse_schedule_text(text: str | Iterable[str]) -> List[ParsedClassEntry]:
    """
    Extract timetable entries from plain text.

    :param text: One string, or one string per PDF page.
    :returns: Entries in document order, duplicates not yet removed.
    """
    if not isinstance(text, str):
        text = "\n".join(text)
    lines = _lines(text)
    entries = _strict_pass(lines)
    if not entries:
        entries = _loose_pass(lines)
    return entries
