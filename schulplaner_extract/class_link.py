"""
Find the detail-page link for one class on a substitution-plan index page.

Untis-style exports list every class as a button or link whose target is an
opaque, regenerated token (``V_CL_<hex>.html``) instead of a readable slug,
so the link has to be found by where it sits relative to the class name.
The resolver runs an ordered list of strategies and stops at the first one
that produces a URL:

1. class_not_listed  - the class name does not occur at all: give up early
2. element_proximity - token inside / around the element showing the class
3. token_window      - any token whose surroundings mention the class
4. anchor_text       - <a> whose text and href both match the class
5. href_match        - <a> whose href contains the class
6. unresolved        - caller falls back to candidate_class_urls()

After fetching, verify_class_page() checks the page's headings name the
class that was asked for.
"""
from __future__ import annotations

import re
from typing import Callable, FrozenSet, Iterable, List, NamedTuple, Optional, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup  # type: ignore[import]

from .models import ClassCheck, LinkResolution

ELEMENT_CONTEXT_BEFORE = 100
ELEMENT_CONTEXT_AFTER = 500
TOKEN_CONTEXT = 200

_STYLE_RE = re.compile(r"<style[^>]*>.*?</style>", re.I | re.S)
_ATTR_RE = re.compile(r"""(?:href|onclick|data-[\w-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.I)
_TOKEN_RE = re.compile(r"""[^\s"'()<>]*V_CL_[A-Za-z0-9_-]+(?:\.html?)?""")
_OPEN_TAG_RE = re.compile(r"<(button|a|div|span|li|td)\b[^>]*>", re.I)
_INVALID_HREF_PREFIXES = ("javascript:", "#", "data:")

# 1-2 digits, a capital, then optional letter / separator / letter / digit,
# e.g. 12FO-3 or 12Fo-b
PAGE_CLASS_RE = re.compile(r"\b(\d{1,2}[A-Z][A-Za-z]?[-\s]?[a-z]?[0-9]?)\b")


class ClassMismatchError(ValueError):
    """The fetched detail page belongs to a different class than requested."""

    def __init__(self, requested_class: str, retrieved_class: str):
        self.requested_class = requested_class
        self.retrieved_class = retrieved_class
        super().__init__(
            f'Fetched page is for class "{retrieved_class}", not "{requested_class}". '
            f'Check that "{requested_class}" is listed on the index page.'
        )


# ──────────────────────────────────────────────────────────────────
#  Class names and URLs
# ──────────────────────────────────────────────────────────────────

def normalize_class_name(name: str) -> str:
    """'12Fo-b' → '12fob'."""
    return re.sub(r"[\s\-_]", "", (name or "").strip().lower())


def class_name_pattern(name: str) -> re.Pattern:
    """
    Case-insensitive pattern for a class name that tolerates one space,
    dash or underscore between any two characters ('12Fo-b', '12 FO b',
    '12fob'), but not a longer class containing it ('112Fo-b', '12Fo-bc').
    """
    norm = normalize_class_name(name)
    body = r"[\s\-_]?".join(re.escape(c) for c in norm)
    return re.compile(r"(?<![A-Za-z0-9])" + body + r"(?![A-Za-z0-9])", re.I)


def classes_match(a: str, b: str) -> bool:
    """
    Same class, or one name is the other without its suffix ('12Fo' and
    '12Fo-b'). '5a' does not match '15A'.
    """
    na, nb = normalize_class_name(a), normalize_class_name(b)
    if not na or not nb:
        return False
    if na == nb:
        return True
    return bool(class_name_pattern(a).search(b) or class_name_pattern(b).search(a))


def base_path(url: str) -> str:
    """Directory URL of an index page, without query and trailing slash."""
    parts = urlsplit(url)
    path = re.sub(r"/index\.html?$", "", parts.path).rstrip("/")
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def resolve_url(href: str, base_url: str) -> str:
    """
    Resolve a link found on the index page:
    absolute URLs stay, '/x' is joined to the domain, anything else is
    taken relative to the index page's directory.
    """
    href = href.strip()
    parts = urlsplit(base_url)
    if href.startswith(("http://", "https://")):
        return href
    if href.startswith("//"):
        return f"{parts.scheme}:{href}"
    if href.startswith("/"):
        return f"{parts.scheme}://{parts.netloc}{href}"
    return urljoin(base_path(base_url) + "/", href)


def candidate_class_urls(base_url: str, class_name: str) -> List[str]:
    """Constructed detail-page URLs to try when no link could be found."""
    base = base_path(base_url)
    slug = re.sub(r"\s+", "", class_name.strip())
    urls = [
        f"{base}/{slug}/index.html",
        f"{base}/{slug}.html",
        f"{base}/{slug}/",
        f"{base}/{slug}",
        f"{base}/{slug.lower()}/index.html",
        f"{base}/{slug.lower()}.html",
    ]
    return list(dict.fromkeys(urls))


def _is_valid_href(href: str) -> bool:
    href = href.strip()
    return bool(href) and not href.lower().startswith(_INVALID_HREF_PREFIXES)


# ──────────────────────────────────────────────────────────────────
#  Strategies
# ──────────────────────────────────────────────────────────────────

class _IndexPage(NamedTuple):
    html: str
    pattern: re.Pattern
    norm: str
    base_url: str
    exclude: FrozenSet[str] = frozenset()

    def allowed(self, href: str) -> bool:
        return resolve_url(href, self.base_url) not in self.exclude


def _link_tokens(html: str) -> List[Tuple[int, str]]:
    """(offset, token) of every opaque link token inside href/onclick/data-* values."""
    tokens: List[Tuple[int, str]] = []
    for m in _ATTR_RE.finditer(html):
        group = 1 if m.group(1) is not None else 2
        value = m.group(group)
        for t in _TOKEN_RE.finditer(value):
            if _is_valid_href(t.group(0)):
                tokens.append((m.start(group) + t.start(), t.group(0)))
    return tokens


def _in_text(html: str, pos: int) -> bool:
    """True when pos lies in text content rather than inside a tag."""
    return html.rfind("<", 0, pos) <= html.rfind(">", 0, pos)


def _enclosing_element(html: str, start: int, end: int) -> Optional[Tuple[int, int]]:
    """Span of the innermost button/a/div/span/li/td around html[start:end]."""
    opens = list(_OPEN_TAG_RE.finditer(html, 0, start))
    for m in reversed(opens):
        close = re.compile(rf"</{m.group(1)}\s*>", re.I).search(html, m.end())
        if close and close.start() >= end:
            return m.start(), close.end()
    return None


def _nearest(tokens: List[Tuple[int, str]], start: int, end: int) -> Optional[str]:
    def distance(item: Tuple[int, str]) -> int:
        pos, token = item
        if pos >= end:
            return pos - end
        return max(0, start - (pos + len(token)))

    if not tokens:
        return None
    return min(tokens, key=distance)[1]


def _element_proximity(page: _IndexPage) -> Optional[str]:
    tokens = [t for t in _link_tokens(page.html) if page.allowed(t[1])]
    if not tokens:
        return None
    for occ in page.pattern.finditer(page.html):
        if not _in_text(page.html, occ.start()):
            continue
        span = _enclosing_element(page.html, occ.start(), occ.end())
        if span:
            inside = [t for t in tokens if span[0] <= t[0] < span[1]]
            token = _nearest(inside, occ.start(), occ.end())
            if token:
                return resolve_url(token, page.base_url)
        lo, hi = span or (occ.start(), occ.end())
        lo, hi = lo - ELEMENT_CONTEXT_BEFORE, hi + ELEMENT_CONTEXT_AFTER
        around = [t for t in tokens if lo <= t[0] < hi]
        token = _nearest(around, occ.start(), occ.end())
        if token:
            return resolve_url(token, page.base_url)
    return None


def _token_window(page: _IndexPage) -> Optional[str]:
    seen = []
    for _, token in _link_tokens(page.html):
        if token not in seen and page.allowed(token):
            seen.append(token)
    for token in seen:
        pos = page.html.find(token)
        window = page.html[max(0, pos - TOKEN_CONTEXT):pos + len(token) + TOKEN_CONTEXT]
        if page.pattern.search(window):
            return resolve_url(token, page.base_url)
    return None


def _anchors(html: str) -> List[Tuple[str, str]]:
    soup = BeautifulSoup(html, "html.parser")
    return [
        (a["href"].strip(), a.get_text(separator=" ", strip=True))
        for a in soup.find_all("a", href=True)
        if _is_valid_href(a["href"])
    ]


def _anchor_text(page: _IndexPage) -> Optional[str]:
    for href, text in _anchors(page.html):
        norm_text = normalize_class_name(text)
        if not norm_text or not page.allowed(href):
            continue
        if norm_text == page.norm or page.norm in norm_text or norm_text in page.norm:
            if page.norm in normalize_class_name(href):
                return resolve_url(href, page.base_url)
    return None


def _href_match(page: _IndexPage) -> Optional[str]:
    for href, _ in _anchors(page.html):
        if page.norm in normalize_class_name(href) and page.allowed(href):
            return resolve_url(href, page.base_url)
    return None


Strategy = Tuple[str, Callable[[_IndexPage], Optional[str]]]

STRATEGIES: List[Strategy] = [
    ("element_proximity", _element_proximity),
    ("token_window", _token_window),
    ("anchor_text", _anchor_text),
    ("href_match", _href_match),
]

PROXIMITY_STRATEGIES: List[Strategy] = STRATEGIES[:2]


# ──────────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────────

def resolve_class_link(
    index_html: str,
    class_name: str,
    base_url: str,
    strategies: List[Strategy] | None = None,
    exclude: Iterable[str] = (),
) -> LinkResolution:
    """
    Find the detail-page URL for class_name on an index page.

    :param base_url: URL of the index page (or its directory); relative
        links are resolved against it.
    :param exclude: resolved URLs that must not be returned, e.g. pages
        already fetched.
    :returns: LinkResolution with the URL and the name of the strategy that
        found it, or url=None with strategy 'class_not_listed' /
        'unresolved'.
    """
    html = _STYLE_RE.sub("", index_html or "")
    norm = normalize_class_name(class_name)
    pattern = class_name_pattern(class_name)
    if not norm or not pattern.search(html):
        return LinkResolution(url=None, strategy="class_not_listed")

    page = _IndexPage(html=html, pattern=pattern, norm=norm, base_url=base_url, exclude=frozenset(exclude))
    for name, strategy in strategies or STRATEGIES:
        url = strategy(page)
        if url:
            return LinkResolution(url=url, strategy=name)
    return LinkResolution(url=None, strategy="unresolved")


def find_class_link(index_html: str, class_name: str, base_url: str) -> str | None:
    return resolve_class_link(index_html, class_name, base_url).url


def proximity_link(
    index_html: str, class_name: str, base_url: str, exclude: Iterable[str] = ()
) -> str | None:
    """Only the position-based strategies; used to retry after a wrong page."""
    return resolve_class_link(index_html, class_name, base_url, PROXIMITY_STRATEGIES, exclude).url


# ──────────────────────────────────────────────────────────────────
#  Post-fetch verification
# ──────────────────────────────────────────────────────────────────

def extract_page_class(html: str) -> str | None:
    """First class code found in the page's <h1>..<h6> headings."""
    soup = BeautifulSoup(html or "", "html.parser")
    for heading in soup.find_all(re.compile(r"^h[1-6]$")):
        m = PAGE_CLASS_RE.search(heading.get_text(separator=" ", strip=True))
        if m:
            return m.group(1).strip()
    return None


def verify_class_page(html: str, class_name: str) -> ClassCheck:
    """
    Compare the class named in a fetched page's headings with class_name.

    A page whose headings carry no class code cannot be checked and counts
    as a match (found is None).
    """
    found = extract_page_class(html)
    if found is None:
        return ClassCheck(requested=class_name, found=None, matches=True)
    return ClassCheck(requested=class_name, found=found, matches=classes_match(found, class_name))
