# site_corpus/crawler/link_extractor.py
"""
URL normalization and link extraction utilities for SiteCorpus.

Canonical URLs are the identity used by the frontier, the visited set and
the cache, so every URL entering any of them goes through :func:`normalize_url`.
"""
from __future__ import annotations

from typing import Iterable, Optional, Set
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

_SKIPPED_PREFIXES = ("mailto:", "javascript:", "tel:", "data:", "#")


def normalize_url(url: str, base: Optional[str] = None) -> Optional[str]:
    """
    Return the canonical absolute form of *url*, or ``None`` if it is unusable.

    Relative URLs are resolved against *base*. Scheme and host are lower-cased,
    the fragment is dropped and trailing slashes are collapsed (the root path
    stays ``/``). The query string is kept as-is.
    """
    if not isinstance(url, str):
        return None
    raw = url.strip()
    try:
        absolute = urljoin(base, raw) if base else raw
        parts = urlsplit(absolute)
        # accessing .port validates it and raises ValueError on garbage
        parts.port
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        return None
    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


def origin_of(url: str) -> str:
    """scheme://netloc of *url*, lower-cased."""
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def is_same_origin(url: str, origin: str) -> bool:
    """True if canonical *url* lives on *origin* (``scheme://host[:port]``)."""
    return origin_of(url) == origin.rstrip("/").lower()


def iter_hrefs(soup: BeautifulSoup) -> Iterable[str]:
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href = tag.get("href")
        if isinstance(href, str) and href.strip():
            yield href.strip()


def document_base(soup: BeautifulSoup, page_url: str) -> str:
    """URL relative hrefs resolve against: ``<base href>`` if present, else *page_url*."""
    base = soup.find("base", href=True)
    if isinstance(base, Tag):
        href = base.get("href")
        if isinstance(href, str) and href.strip():
            return urljoin(page_url, href.strip())
    return page_url


def extract_links(soup: BeautifulSoup, page_url: str, origin: str) -> Set[str]:
    """
    Extract canonical same-origin links from a parsed page.

    *page_url* is the address the markup was served from; a ``<base href>``
    in the document overrides it. Ignores mailto:, javascript:, tel:,
    in-page anchors and external domains.
    """
    base = document_base(soup, page_url)
    links: Set[str] = set()
    for href in iter_hrefs(soup):
        if href.lower().startswith(_SKIPPED_PREFIXES):
            continue
        canonical = normalize_url(href, base)
        if canonical is None:
            continue
        if is_same_origin(canonical, origin):
            links.add(canonical)
    return links
