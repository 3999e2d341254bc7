# === FILE: site_corpus/parser/html_parser.py ===
"""HTML content extraction for SiteCorpus.

:func:`extract` turns raw markup into a :class:`~site_corpus.crawler.models.PageRecord`:

* title — ``<title>`` text, else the first ``<h1>``, else ``""``.
* meta_description — ``<meta name="description">`` content or ``""``.
* headings — ``(level, text)`` pairs in document order.
* content — the page body as whitespace-collapsed blocks joined by blank
  lines. The first strategy that yields text wins:

  1. the first element matching :data:`MAIN_CONTENT_SELECTORS`;
  2. heading-scoped sections (heading text followed by the paragraph,
     list-item, table-cell and quote text of its following siblings);
  3. every ``<p>`` in document order.

* links — canonical same-origin URLs.

Parsing is done with BeautifulSoup on the lxml tree builder. Any exception
during extraction is reported through ``PageRecord.error`` instead of being
raised, so one malformed page cannot abort a crawl.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_corpus.crawler.link_extractor import extract_links, origin_of
from site_corpus.crawler.models import Heading, PageRecord

__all__: Sequence[str] = ("extract", "MAIN_CONTENT_SELECTORS", "collapse_whitespace")

NON_CONTENT_TAGS: Tuple[str, ...] = (
    "script",
    "style",
    "noscript",
    "template",
    "iframe",
    "img",
    "picture",
    "svg",
    "canvas",
    "video",
    "audio",
    "source",
    "object",
    "embed",
)

MAIN_CONTENT_SELECTORS: Tuple[str, ...] = (
    "main",
    "article",
    "[role=main]",
    "#content",
    ".main-content",
    ".content",
    ".entry-content",
    ".post-content",
)

HEADING_TAGS: Tuple[str, ...] = ("h1", "h2", "h3", "h4", "h5", "h6")
SECTION_TEXT_TAGS: Tuple[str, ...] = ("p", "li", "td", "th", "blockquote")

_WS_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _text(node: Tag) -> str:
    return collapse_whitespace(node.get_text(" "))


def _strip_non_content(soup: BeautifulSoup) -> None:
    for element in soup(list(NON_CONTENT_TAGS)):
        element.decompose()
    for element in soup.find_all(attrs={"aria-hidden": "true"}):
        # a parent may already have taken it out of the tree
        if element.decomposed:
            continue
        element.decompose()


def _title(soup: BeautifulSoup) -> str:
    title_tag = soup.find("title")
    if title_tag is not None:
        title = _text(title_tag)
        if title:
            return title
    h1 = soup.find("h1")
    return _text(h1) if h1 is not None else ""


def _meta_description(soup: BeautifulSoup) -> str:
    meta = soup.find("meta", attrs={"name": re.compile(r"^description$", re.IGNORECASE)})
    if meta is None:
        return ""
    content = meta.get("content")
    return collapse_whitespace(content) if isinstance(content, str) else ""


def _headings(soup: BeautifulSoup) -> List[Heading]:
    result: List[Heading] = []
    for tag in soup.find_all(list(HEADING_TAGS)):
        text = _text(tag)
        if text:
            result.append((int(tag.name[1]), text))
    return result


def _main_content(soup: BeautifulSoup) -> str:
    for selector in MAIN_CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = _text(node)
        if text:
            return text
    return ""


def _section_items(sibling: Tag) -> Iterable[str]:
    if sibling.name in SECTION_TEXT_TAGS:
        yield _text(sibling)
        return
    for node in sibling.find_all(list(SECTION_TEXT_TAGS)):
        # skip nested matches, the outer one already covers their text
        if node.find_parent(list(SECTION_TEXT_TAGS)) is not None:
            continue
        yield _text(node)


def _heading_sections(soup: BeautifulSoup) -> str:
    blocks: List[str] = []
    for heading in soup.find_all(list(HEADING_TAGS)):
        title = _text(heading)
        items: List[str] = []
        for sibling in heading.find_next_siblings():
            if not isinstance(sibling, Tag):
                continue
            if sibling.name in HEADING_TAGS:
                break
            items.extend(t for t in _section_items(sibling) if t)
        if title and items:
            blocks.append("\n".join([title, *items]))
    return "\n\n".join(blocks)


def _paragraphs(soup: BeautifulSoup) -> str:
    texts = [_text(p) for p in soup.find_all("p")]
    return "\n\n".join(t for t in texts if t)


def _content(soup: BeautifulSoup) -> str:
    return _main_content(soup) or _heading_sections(soup) or _paragraphs(soup)


def extract(
    markup: str,
    page_url: str,
    origin: Optional[str] = None,
    fetched_at: Optional[datetime] = None,
    base_url: Optional[str] = None,
) -> PageRecord:
    """Parse *markup* fetched from *page_url* into a PageRecord.

    Parameters
    ----------
    markup
        Raw HTML.
    page_url
        Canonical URL of the page; the identity stored on the record.
    origin
        ``scheme://host[:port]`` links must share to be kept. Defaults to
        the origin of *page_url*.
    fetched_at
        Timestamp stored on the record; defaults to now (UTC).
    base_url
        Address the markup was actually served from (after redirects).
        Relative links resolve against it; defaults to *page_url*. The
        record keeps *page_url* as its identity.
    """
    fetched_at = fetched_at or datetime.now(timezone.utc)
    try:
        soup = BeautifulSoup(markup, "lxml")
        links = extract_links(soup, base_url or page_url, origin or origin_of(page_url))
        title = _title(soup)
        meta_description = _meta_description(soup)
        _strip_non_content(soup)
        headings = _headings(soup)
        content = _content(soup)
    except Exception as exc:
        return PageRecord(
            url=page_url,
            fetched_at=fetched_at,
            error=f"extraction failed: {exc}",
        )
    return PageRecord(
        url=page_url,
        title=title,
        meta_description=meta_description,
        headings=tuple(headings),
        content=content,
        links=frozenset(links),
        fetched_at=fetched_at,
    )
