"""Tests for class_link.py – finding and checking class detail pages."""
import pytest

from schulplaner_extract.class_link import (
    ClassMismatchError,
    base_path,
    candidate_class_urls,
    class_name_pattern,
    classes_match,
    extract_page_class,
    find_class_link,
    proximity_link,
    resolve_class_link,
    resolve_url,
    verify_class_page,
)

BASE = "https://example.org/vplan/index.html"

BUTTON_INDEX = """
<html><head><style>.btn { color: red; } /* 12Fo-b */</style></head>
<body>
<div class="classes">
  <button class="btn" onclick="location.href='V_CL_A1B2C3D4.html'">12Fo-a</button>
  <button class="btn" onclick="location.href='V_CL_E5F6A7B8.html'">12Fo-b</button>
  <button class="btn" onclick="location.href='V_CL_C9D0E1F2.html'">12Fo-c</button>
</div>
</body></html>
"""


# ── Names and URLs ─────────────────────────────────────────────

class TestClassNames:
    def test_pattern_tolerates_separators(self):
        pattern = class_name_pattern("12Fo-b")
        assert pattern.search("Klasse 12FO b heute")
        assert pattern.search("12fob")
        assert pattern.search("12Fo_b")

    def test_pattern_rejects_longer_class(self):
        pattern = class_name_pattern("12Fo-b")
        assert not pattern.search("112Fo-b")
        assert not pattern.search("12Fo-bc")

    def test_classes_match(self):
        assert classes_match("12Fo-b", "12 FO B")
        assert classes_match("12Fo", "12Fo-b")
        assert not classes_match("12FO-3", "12Fo-b")
        assert not classes_match("", "12Fo-b")

    def test_classes_match_needs_whole_number(self):
        assert not classes_match("15A", "5a")
        assert not classes_match("5a", "15A")
        assert classes_match("5A", "5a")


class TestUrls:
    def test_base_path(self):
        assert base_path(BASE) == "https://example.org/vplan"
        assert base_path("https://example.org/vplan/?x=1") == "https://example.org/vplan"

    def test_resolve_relative(self):
        assert resolve_url("V_CL_1.html", BASE) == "https://example.org/vplan/V_CL_1.html"

    def test_resolve_domain_absolute(self):
        assert resolve_url("/other/V_CL_1.html", BASE) == "https://example.org/other/V_CL_1.html"

    def test_resolve_absolute(self):
        assert resolve_url("http://cdn.example.net/x.html", BASE) == "http://cdn.example.net/x.html"

    def test_candidates(self):
        urls = candidate_class_urls(BASE, "12Fo-b")
        assert urls[0] == "https://example.org/vplan/12Fo-b/index.html"
        assert "https://example.org/vplan/12fo-b.html" in urls
        assert len(urls) == len(set(urls)) == 6


# ── Resolver ───────────────────────────────────────────────────

class TestResolveClassLink:
    def test_token_inside_button(self):
        resolution = resolve_class_link(BUTTON_INDEX, "12Fo-b", BASE)
        assert resolution.url == "https://example.org/vplan/V_CL_E5F6A7B8.html"
        assert resolution.strategy == "element_proximity"
        assert resolution.resolved

    def test_token_before_class_text(self):
        html = (
            '<p><span data-target="V_CL_0FF1CE00.html">........................</span>'
            "<b>12Fo-b</b></p>"
        )
        resolution = resolve_class_link(html, "12Fo-b", BASE)
        assert resolution.url == "https://example.org/vplan/V_CL_0FF1CE00.html"

    def test_idempotent(self):
        first = find_class_link(BUTTON_INDEX, "12Fo-b", BASE)
        assert find_class_link(BUTTON_INDEX, "12Fo-b", BASE) == first

    def test_class_not_listed(self):
        resolution = resolve_class_link(BUTTON_INDEX, "10Ab-x", BASE)
        assert resolution.url is None
        assert resolution.strategy == "class_not_listed"

    def test_class_only_in_stylesheet(self):
        html = "<style>/* 12Fo-b */</style><p>Klassen folgen</p>"
        assert resolve_class_link(html, "12Fo-b", BASE).strategy == "class_not_listed"

    def test_unresolved(self):
        resolution = resolve_class_link("<p>12Fo-b</p>", "12Fo-b", BASE)
        assert resolution.url is None
        assert resolution.strategy == "unresolved"

    def test_readable_anchor(self):
        html = '<ul><li><a href="12fob/plan.html">Klasse 12Fo-b</a></li></ul>'
        resolution = resolve_class_link(html, "12Fo-b", BASE)
        assert resolution.url == "https://example.org/vplan/12fob/plan.html"
        assert resolution.strategy == "anchor_text"

    def test_class_only_in_attribute(self):
        html = (
            '<select><option data-url="V_CL_ABCDEF01.html" title="12Fo-b">'
            "Klasse wählen</option></select>"
        )
        resolution = resolve_class_link(html, "12Fo-b", BASE)
        assert resolution.url == "https://example.org/vplan/V_CL_ABCDEF01.html"
        assert resolution.strategy == "token_window"

    def test_readable_href(self):
        html = '<a href="plans/12fo-b.htm">Plan</a><p>12Fo-b</p>'
        resolution = resolve_class_link(html, "12Fo-b", BASE)
        assert resolution.url == "https://example.org/vplan/plans/12fo-b.htm"
        assert resolution.strategy == "href_match"

    def test_excluded_urls_skipped(self):
        tried = ["https://example.org/vplan/V_CL_E5F6A7B8.html"]
        resolution = resolve_class_link(BUTTON_INDEX, "12Fo-b", BASE, exclude=tried)
        assert resolution.url is not None
        assert resolution.url != tried[0]

    def test_everything_excluded(self):
        tried = [
            "https://example.org/vplan/V_CL_A1B2C3D4.html",
            "https://example.org/vplan/V_CL_E5F6A7B8.html",
            "https://example.org/vplan/V_CL_C9D0E1F2.html",
        ]
        assert proximity_link(BUTTON_INDEX, "12Fo-b", BASE, exclude=tried) is None

    def test_javascript_links_ignored(self):
        html = '<a href="javascript:void(0)">12Fo-b</a>'
        assert resolve_class_link(html, "12Fo-b", BASE).url is None

    def test_proximity_only(self):
        html = '<ul><li><a href="12fob/plan.html">Klasse 12Fo-b</a></li></ul>'
        assert proximity_link(html, "12Fo-b", BASE) is None
        assert proximity_link(BUTTON_INDEX, "12Fo-b", BASE).endswith("V_CL_E5F6A7B8.html")


# ── Verification ───────────────────────────────────────────────

class TestVerifyClassPage:
    def test_matching_heading(self):
        check = verify_class_page("<h2>Vertretungen 12Fo-b</h2>", "12Fo-b")
        assert check.matches
        assert check.found == "12Fo-b"

    def test_wrong_class(self):
        check = verify_class_page("<h1>Vertretungsplan</h1><h2>12FO-3</h2>", "12Fo-b")
        assert not check.matches
        assert check.found == "12FO-3"

    def test_longer_class_number(self):
        check = verify_class_page("<h2>Klasse 15A</h2>", "5a")
        assert check.found == "15A"
        assert not check.matches

    def test_no_class_in_headings(self):
        check = verify_class_page("<h1>Vertretungsplan</h1><p>12FO-3</p>", "12Fo-b")
        assert check.matches
        assert check.found is None

    def test_extract_page_class(self):
        assert extract_page_class("<h3>Klasse 5A</h3>") == "5A"
        assert extract_page_class("<p>nothing</p>") is None


class TestClassMismatchError:
    def test_names_both_classes(self):
        err = ClassMismatchError("12Fo-b", "12FO-3")
        assert err.requested_class == "12Fo-b"
        assert err.retrieved_class == "12FO-3"
        assert "12Fo-b" in str(err) and "12FO-3" in str(err)
        with pytest.raises(ValueError):
            raise err
