"""
Fetch a substitution plan over HTTP and hand it to the parser.

Three kinds of URL are accepted:
- a daily page (``.../tagesvertretungen...``) listing every class;
- a class page (``.../V_CL_<token>.html``) for one class;
- an index page (``.../index.html``) together with a class name. The class
  link is looked up on the index, the detail page is fetched, and its
  heading is checked against the requested class before parsing.

Anything else is fetched and parsed as a class page.

All requests go through one PageFetcher, which caps the number of requests
for the whole sequence and applies the timeout to each of them.
"""
from __future__ import annotations

import logging
import time
from datetime import date
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

import requests

from .class_link import (
    ClassMismatchError,
    candidate_class_urls,
    proximity_link,
    resolve_class_link,
    verify_class_page,
)
from .models import SubstitutionResult
from .substitution_html import parse_substitution_plan

log = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15  # seconds, per request
MAX_ATTEMPTS = 6  # index + detail + retry + constructed URLs

REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "de-DE,de;q=0.9,en;q=0.8",
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
}


class FetchError(RuntimeError):
    """A page could not be retrieved."""

    def __init__(self, message: str, url: str | None = None, status: int | None = None):
        self.url = url
        self.status = status
        super().__init__(message)


class FetchBudgetExceeded(FetchError):
    """The request cap for one fetch sequence was reached."""


def with_cache_buster(url: str, stamp: int | None = None) -> str:
    """Append ``t=<millis>`` so intermediate caches serve a fresh copy."""
    if stamp is None:
        stamp = int(time.time() * 1000)
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}t={stamp}"


class PageFetcher:
    """
    Sequential GETs with a shared attempt cap.

    :param session: Anything with a requests-style ``get(url, headers=,
        timeout=)``; a new requests.Session by default.
    """

    def __init__(
        self,
        session=None,
        timeout: float = REQUEST_TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.attempts = 0

    def get(self, url: str) -> Tuple[int, str]:
        """One request; returns (status code, body). Counts against the cap."""
        if self.attempts >= self.max_attempts:
            raise FetchBudgetExceeded(
                f"Gave up after {self.attempts} requests (limit {self.max_attempts}).", url=url
            )
        self.attempts += 1
        target = with_cache_buster(url)
        log.debug("GET %s (attempt %d/%d)", target, self.attempts, self.max_attempts)
        try:
            response = self.session.get(target, headers=REQUEST_HEADERS, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Could not load {url}: {e}", url=url) from e
        return response.status_code, response.text

    def fetch(self, url: str) -> str:
        """Body of url; raises FetchError on any status other than 200."""
        status, text = self.get(url)
        if status != 200:
            raise FetchError(f"{url} answered with status {status}", url=url, status=status)
        return text


def classify_url(url: str, class_name: str = "") -> str:
    """'daily', 'class', 'index' (only with a class name) or 'direct'."""
    path = urlsplit(url).path
    if "tagesvertretungen" in path.lower():
        return "daily"
    if "V_CL" in path:
        return "class"
    if class_name and "index" in path.lower():
        return "index"
    return "direct"


def _check_url(url: str) -> None:
    parts = urlsplit(url or "")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"Invalid URL: {url!r}")


def _first_available(
    fetcher: PageFetcher, urls: List[str], class_name: str, tried: List[str]
) -> Tuple[str, str]:
    """
    Fetch urls in order until one answers 200, appending each to tried.

    404s move on to the next URL; any other error status is final.
    """
    for url in urls:
        tried.append(url)
        status, text = fetcher.get(url)
        if status == 200:
            return url, text
        if status != 404:
            raise FetchError(f"{url} answered with status {status}", url=url, status=status)
        log.info("%s not found, trying next candidate", url)
    raise FetchError(
        f'No substitution page found for class "{class_name}".', url=urls[-1] if urls else None, status=404
    )


def _fetch_via_index(
    fetcher: PageFetcher, index_url: str, class_name: str
) -> Tuple[str, str, Optional[str], Optional[str]]:
    """(page url, page html, link strategy, class named on the page)."""
    index_html = fetcher.fetch(index_url)
    resolution = resolve_class_link(index_html, class_name, index_url)
    if resolution.strategy == "class_not_listed":
        log.warning('Class "%s" does not appear on %s', class_name, index_url)
    log.info("Class link for %s: %s (%s)", class_name, resolution.url, resolution.strategy)

    candidates = candidate_class_urls(index_url, class_name)
    if resolution.url:
        candidates = [resolution.url] + [u for u in candidates if u != resolution.url]
    tried: List[str] = []
    page_url, html = _first_available(fetcher, candidates, class_name, tried)

    check = verify_class_page(html, class_name)
    if not check.matches:
        log.warning('%s shows class "%s", expected "%s"; retrying', page_url, check.found, class_name)
        retry_url = proximity_link(index_html, class_name, index_url, exclude=tried)
        if retry_url:
            try:
                retry_html = fetcher.fetch(retry_url)
            except FetchBudgetExceeded:
                raise
            except FetchError as e:
                raise ClassMismatchError(class_name, check.found or "") from e
            retry_check = verify_class_page(retry_html, class_name)
            if retry_check.matches:
                return retry_url, retry_html, resolution.strategy, retry_check.found
        raise ClassMismatchError(class_name, check.found or "")
    return page_url, html, resolution.strategy, check.found


def fetch_substitution_plan(
    url: str,
    class_name: str = "",
    fetcher: PageFetcher | None = None,
    today: date | None = None,
) -> SubstitutionResult:
    """
    Retrieve and parse the substitution plan behind url.

    :param class_name: Class to extract; required for index URLs.
    :param fetcher: Shared PageFetcher (default: a new one with its own cap).
    :raises ValueError: url is not an http(s) URL.
    :raises FetchError: a page could not be loaded or the request cap was hit.
    :raises ClassMismatchError: the detail page belongs to another class.
    """
    _check_url(url)
    fetcher = fetcher or PageFetcher()
    kind = classify_url(url, class_name)
    log.info("Fetching %s page %s", kind, url)

    strategy = None
    page_class = None
    if kind == "index":
        page_url, html, strategy, page_class = _fetch_via_index(fetcher, url, class_name)
    else:
        page_url, html = url, fetcher.fetch(url)

    result = parse_substitution_plan(
        html, page_url, class_name, is_daily_page=(kind == "daily"), today=today
    )
    result.diagnostics.link_strategy = strategy
    result.diagnostics.page_class = page_class
    result.diagnostics.fetch_attempts = fetcher.attempts
    log.info("Found %d substitution entries for %s", len(result.entries), class_name or page_url)
    return result
