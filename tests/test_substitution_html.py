"""Tests for substitution_html.py – substitution plan tables."""
from datetime import date

import pytest

from schulplaner_extract.substitution_html import map_columns, parse_date, parse_substitution_plan

URL = "https://example.org/vplan/V_CL_E5F6A7B8.html"
TODAY = date(2026, 10, 19)

CLASS_PAGE = """
<h2>12Fo-b</h2>
<table>
<tr><th>Datum</th><th>Pos</th><th>Fach</th><th>Raum</th><th>Vertretung</th><th>Lehrer</th><th>Art</th><th>Bemerkung</th></tr>
<tr><td>20.10.2026</td><td>3</td><td>Mathematik</td><td>B201</td><td>Klein</td><td>Bauer</td><td>Vertretung</td><td>Aufgaben im Moodle</td></tr>
<tr><td></td><td>5-6</td><td>Sport</td><td>Halle</td><td></td><td>Solm</td><td>Entfall</td><td></td></tr>
<tr><td colspan="8">Stand: 19.10.2026</td></tr>
</table>
"""

DAILY_PAGE = """
<table>
<tr><th>Klasse</th><th>Datum</th><th>Stunde</th><th>Fach</th><th>Vertretung</th><th>Raum</th><th>Info</th></tr>
<tr><td>12Fo-b</td><td>Di, 20.10.2026</td><td>1</td><td>Deutsch</td><td>Schä</td><td>214</td><td></td></tr>
<tr><td>11Ab-a</td><td>20.10.2026</td><td>2</td><td>Englisch</td><td>Klein</td><td>203</td><td></td></tr>
<tr><td></td><td></td><td>3</td><td>Physik</td><td>---</td><td>101</td><td>fällt aus</td></tr>
<tr><td>12Fo-a, 12Fo-b</td><td>21.10.2026</td><td>4</td><td>Chemie</td><td>Bauer</td><td>105</td><td></td></tr>
</table>
"""


class TestParseDate:
    @pytest.mark.parametrize("raw", [
        "20.10.2026", "20.10.26", "20-10-2026", "20/10/2026", "2026-10-20", "Dienstag, 20.10.2026",
    ])
    def test_formats(self, raw):
        assert parse_date(raw) == "2026-10-20"

    def test_without_year(self):
        assert parse_date("Di 20.10.", today=TODAY) == "2026-10-20"

    def test_invalid(self):
        assert parse_date("") is None
        assert parse_date("kein Datum") is None
        assert parse_date("31.02.2026") is None


class TestMapColumns:
    def test_german_header(self):
        columns = map_columns(["Datum", "Pos", "Fach", "Raum", "Vertretung", "Lehrer", "Art", "Bemerkung"])
        assert columns == {
            "date": 0, "period": 1, "subject": 2, "room": 3,
            "substitute": 4, "original": 5, "type": 6, "remark": 7,
        }

    def test_column_not_claimed_twice(self):
        columns = map_columns(["Klasse", "Stunde", "Vertretungslehrer", "Lehrer"])
        assert columns["substitute"] == 2
        assert columns["original"] == 3

    def test_english_header(self):
        columns = map_columns(["Class", "Period", "Subject", "Substitute", "Teacher", "Note"])
        assert columns["class"] == 0
        assert columns["original"] == 4
        assert columns["message"] == 5


class TestClassPage:
    def test_entries(self):
        result = parse_substitution_plan(CLASS_PAGE, URL, "12Fo-b", today=TODAY)
        assert [e.to_dict() for e in result.entries] == [
            {
                "id": f"{URL}-0-1",
                "date": "2026-10-20",
                "class": "12Fo-b",
                "period": "3",
                "subject": "Mathematik",
                "originalTeacher": "Bauer",
                "substituteTeacher": "Klein",
                "room": "B201",
                "note": "Vertretung | Aufgaben im Moodle",
            },
            {
                "id": f"{URL}-0-2",
                "date": "2026-10-20",
                "class": "12Fo-b",
                "period": "5-6",
                "subject": "Sport",
                "originalTeacher": "Solm",
                "room": "Halle",
                "note": "Entfall",
            },
        ]
        assert result.url == URL

    def test_short_rows_skipped(self):
        d = parse_substitution_plan(CLASS_PAGE, URL, "12Fo-b", today=TODAY).diagnostics
        assert d.tables_found == 1
        assert d.rows_seen == 3
        assert d.rows_skipped == 1

    def test_missing_date_uses_today(self):
        html = (
            "<table><tr><th>Stunde</th><th>Fach</th><th>Vertretung</th></tr>"
            "<tr><td>2</td><td>Bio</td><td>Klein</td></tr></table>"
        )
        entries = parse_substitution_plan(html, URL, "12Fo-b", today=TODAY).entries
        assert entries[0].date == "2026-10-19"

    def test_row_without_content_dropped(self):
        html = (
            "<table><tr><th>Stunde</th><th>Fach</th><th>Vertretung</th></tr>"
            "<tr><td></td><td></td><td></td></tr></table>"
        )
        assert parse_substitution_plan(html, URL, "12Fo-b", today=TODAY).entries == []

    def test_layout_table_ignored(self):
        html = "<table><tr><td>Home</td><td>Kontakt</td></tr><tr><td>a</td><td>b</td></tr></table>"
        result = parse_substitution_plan(html, URL, "12Fo-b", today=TODAY)
        assert result.entries == []
        assert result.diagnostics.notes


class TestDailyPage:
    def test_filters_other_classes(self):
        result = parse_substitution_plan(DAILY_PAGE, URL, "12Fo-b", is_daily_page=True, today=TODAY)
        assert [(e.subject, e.date) for e in result.entries] == [
            ("Deutsch", "2026-10-20"),
            ("Chemie", "2026-10-21"),
        ]
        assert result.entries[0].class_name == "12Fo-b"
        assert result.diagnostics.rows_filtered == 2

    def test_longer_class_number_not_matched(self):
        page = (
            "<table><tr><th>Klasse</th><th>Stunde</th><th>Fach</th><th>Vertretung</th></tr>"
            "<tr><td>15A</td><td>1</td><td>Deutsch</td><td>Schä</td></tr>"
            "<tr><td>5a</td><td>2</td><td>Musik</td><td>Klein</td></tr></table>"
        )
        result = parse_substitution_plan(page, URL, "5a", is_daily_page=True, today=TODAY)
        assert [e.subject for e in result.entries] == ["Musik"]
        assert result.diagnostics.rows_filtered == 1

    def test_without_class_keeps_all(self):
        result = parse_substitution_plan(DAILY_PAGE, URL, "", is_daily_page=True, today=TODAY)
        assert len(result.entries) == 4
        assert result.entries[2].class_name == "11Ab-a"
        assert result.entries[2].note == "fällt aus"
