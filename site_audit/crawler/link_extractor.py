# site_audit/crawler/link_extractor.py
"""
Link extraction and URL normalization utilities for SiteAudit.
"""
from __future__ import annotations

import posixpath
from typing import Iterable, List, Sequence
from urllib.parse import urldefrag, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

_PSEUDO_SCHEMES = ("tel:", "mailto:", "javascript:")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def extract_hrefs(html: str, page_url: str) -> List[str]:
    """
    Return every ``<a href>`` of *html* resolved against *page_url*.

    Values are returned in document order, unfiltered (fragments kept).
    """
    soup = BeautifulSoup(html, "html.parser")
    base = page_url
    base_tag = soup.find("base", href=True)
    if isinstance(base_tag, Tag) and isinstance(base_tag.get("href"), str):
        base = urljoin(page_url, base_tag["href"].strip())
    hrefs: List[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw or raw.lower().startswith(_PSEUDO_SCHEMES):
            hrefs.append(raw)
            continue
        hrefs.append(urljoin(base, raw))
    return hrefs


def normalize_url(url: str) -> str:
    """
    Parse and re-serialize *url*: lower-case scheme and host, ``/`` for an
    empty path, fragment dropped. Query strings and trailing slashes are kept.
    """
    url, _ = urldefrag(url.strip())
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    netloc = parts.netloc.lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    if port is not None and _DEFAULT_PORTS.get(scheme) == port:
        netloc = netloc.rsplit(":", 1)[0]
    path = parts.path or ("/" if scheme in _DEFAULT_PORTS else "")
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def origin_of(url: str) -> tuple[str, str, int | None]:
    """Return ``(scheme, host, port)`` with the default port filled in."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    return scheme, (parts.hostname or "").lower(), port or _DEFAULT_PORTS.get(scheme)


def same_origin(url: str, other: str) -> bool:
    return origin_of(url) == origin_of(other)


def has_excluded_extension(url: str, excluded: Sequence[str]) -> bool:
    ext = posixpath.splitext(urlsplit(url).path)[1].lower().lstrip(".")
    return bool(ext) and ext in excluded


def is_page_link(url: str, excluded_extensions: Sequence[str]) -> bool:
    """True for http(s) links that do not point to an excluded file type."""
    if not url or url.lower().startswith(_PSEUDO_SCHEMES):
        return False
    if urlsplit(url).scheme.lower() not in _DEFAULT_PORTS:
        return False
    return not has_excluded_extension(url, excluded_extensions)


def filter_links(
    hrefs: Iterable[str],
    seed_url: str,
    excluded_extensions: Sequence[str],
) -> List[str]:
    """
    Keep same-origin page links without a fragment, normalized, in order.

    Duplicates within *hrefs* are collapsed; cross-call deduplication is the
    frontier's job.
    """
    seen: set[str] = set()
    links: List[str] = []
    for href in hrefs:
        if not is_page_link(href, excluded_extensions) or "#" in href:
            continue
        url = normalize_url(href)
        if url in seen or not same_origin(url, seed_url):
            continue
        seen.add(url)
        links.append(url)
    return links


__all__ = [
    "extract_hrefs",
    "normalize_url",
    "origin_of",
    "same_origin",
    "has_excluded_extension",
    "is_page_link",
    "filter_links",
]
