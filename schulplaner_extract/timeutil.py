"""
Clock-time helpers and lesson-duration inference.

Timetable grids only carry start times; the duration of a slot is inferred
from the gap to the next row and clamped so the last lesson of a day never
runs past that day's known end time.
"""
from __future__ import annotations

from .vocabulary import CLOCK_RE, DAY_END_TIMES

DEFAULT_DURATION = 45
ASSUMED_BREAK = 10
DAY_END_WINDOW = 60
MINUTES_PER_DAY = 24 * 60


def normalize_time(text: str) -> str | None:
    """
    Return the first clock value in *text* as 'HH:MM'.

    '8:5', '08.05' and '8:05' all give '08:05'. Values that are not a valid
    24h clock time give None.
    """
    if not text:
        return None
    m = CLOCK_RE.search(text)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def to_minutes(hhmm: str) -> int:
    h, m = hhmm.split(":")
    return int(h) * 60 + int(m)


def classify_gap(diff: int) -> int:
    """Map the minutes between two slot starts to a lesson length."""
    if 45 <= diff <= 50:
        return 45
    if 90 <= diff <= 95:
        return 90
    if 60 <= diff <= 70:
        # a break sits between the two slots
        return DEFAULT_DURATION
    return max(DEFAULT_DURATION, diff - ASSUMED_BREAK)


def clamp_to_day_end(start: str, duration: int, day: str | None) -> int:
    """
    Shorten *duration* so a slot starting at *start* ends with the school
    day, when it would otherwise overrun the day's end by at most an hour.
    """
    end_of_day = DAY_END_TIMES.get(day or "")
    if not end_of_day:
        return duration
    start_min = to_minutes(start)
    remaining = to_minutes(end_of_day) - start_min
    if remaining <= 0:
        return duration
    overrun = start_min + duration - to_minutes(end_of_day)
    if 0 < overrun <= DAY_END_WINDOW:
        return remaining
    return duration


def infer_duration(start: str, next_start: str | None, day: str | None = None) -> int:
    """
    Infer the length of the slot at *start* from the following slot.

    Without a following slot the default of 45 minutes is used. Either way
    the result is clamped to the end of *day*.
    """
    if next_start is None:
        duration = DEFAULT_DURATION
    else:
        diff = (to_minutes(next_start) - to_minutes(start)) % MINUTES_PER_DAY
        duration = classify_gap(diff)
    return clamp_to_day_end(start, duration, day)
