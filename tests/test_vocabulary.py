"""Tests for vocabulary.py – weekday names."""
import pytest

from schulplaner_extract.vocabulary import normalize_weekday


class TestNormalizeWeekday:
    @pytest.mark.parametrize("raw", ["Montag", "MONTAG 20.10.", "Mo", "Mo.", "Mo 20.10."])
    def test_monday_variants(self, raw):
        assert normalize_weekday(raw) == "Montag"

    def test_abbreviation_with_date(self):
        assert normalize_weekday("Fr 23.10.2026") == "Freitag"

    def test_word_starting_like_abbreviation(self):
        assert normalize_weekday("Dozent") is None
        assert normalize_weekday("Mathe") is None

    def test_empty(self):
        assert normalize_weekday("") is None
        assert normalize_weekday("Zeit") is None
