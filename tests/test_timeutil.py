"""Tests for timeutil.py – clock times and lesson durations."""
import pytest

from schulplaner_extract.timeutil import (
    classify_gap,
    clamp_to_day_end,
    infer_duration,
    normalize_time,
    to_minutes,
)


class TestNormalizeTime:
    @pytest.mark.parametrize("raw", ["8:5", "08.05", "8:05", "08:05 Uhr"])
    def test_variants(self, raw):
        assert normalize_time(raw) == "08:05"

    def test_out_of_range(self):
        assert normalize_time("25:00") is None
        assert normalize_time("08:75") is None

    def test_date_is_not_a_time(self):
        assert normalize_time("20.10.2026") is None

    def test_empty(self):
        assert normalize_time("") is None
        assert normalize_time("Pause") is None


class TestToMinutes:
    def test_values(self):
        assert to_minutes("13:10") == 790
        assert to_minutes("00:05") == 5


class TestClassifyGap:
    def test_single_lesson(self):
        assert classify_gap(45) == 45
        assert classify_gap(50) == 45

    def test_double_lesson(self):
        assert classify_gap(90) == 90
        assert classify_gap(95) == 90

    def test_lesson_with_break(self):
        assert classify_gap(65) == 45

    def test_other_gaps(self):
        assert classify_gap(120) == 110
        assert classify_gap(30) == 45


class TestInferDuration:
    def test_45_apart(self):
        assert infer_duration("08:00", "08:45") == 45

    def test_90_apart(self):
        assert infer_duration("08:00", "09:30") == 90

    def test_last_slot_defaults(self):
        assert infer_duration("08:00", None) == 45

    def test_wraps_midnight(self):
        assert infer_duration("23:30", "00:15") == 45

    def test_clamped_to_day_end(self):
        # Freitag ends 13:10
        assert infer_duration("12:30", None, "Freitag") == 40
        assert infer_duration("12:30", "14:00", "Freitag") == 40

    def test_not_clamped_inside_day(self):
        assert infer_duration("11:00", None, "Freitag") == 45


class TestClampToDayEnd:
    def test_unknown_day(self):
        assert clamp_to_day_end("12:30", 45, None) == 45
        assert clamp_to_day_end("12:30", 45, "Samstag") == 45

    def test_start_after_day_end(self):
        assert clamp_to_day_end("14:30", 90, "Freitag") == 90

    def test_overrun_beyond_window(self):
        # 12:30 + 120 overruns 13:10 by 100 minutes
        assert clamp_to_day_end("12:30", 120, "Freitag") == 120

    def test_monday(self):
        assert clamp_to_day_end("14:30", 45, "Montag") == 30
