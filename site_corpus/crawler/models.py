# site_corpus/crawler/models.py
"""
Data models for the SiteCorpus crawler and cache.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional, Tuple

Heading = Tuple[int, str]


def _parse_ts(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(slots=True)
class PageRecord:
    """One crawled page: canonical URL, extracted text and same-origin links."""

    url: str
    title: str = ""
    meta_description: str = ""
    headings: Tuple[Heading, ...] = ()
    content: str = ""
    links: FrozenSet[str] = frozenset()
    fetched_at: Optional[datetime] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        self.headings = tuple((int(level), str(text)) for level, text in self.headings)
        self.links = frozenset(self.links)
        if self.error and self.content:
            raise ValueError(f"record for {self.url} carries both content and an error")

    @classmethod
    def failed(cls, url: str, error: str) -> PageRecord:
        return cls(url=url, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def has_content(self) -> bool:
        return bool(self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "meta_description": self.meta_description,
            "headings": [[level, text] for level, text in self.headings],
            "content": self.content,
            "links": sorted(self.links),
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PageRecord:
        return cls(
            url=data["url"],
            title=data.get("title") or "",
            meta_description=data.get("meta_description") or "",
            headings=tuple((int(h[0]), str(h[1])) for h in data.get("headings") or ()),
            content=data.get("content") or "",
            links=frozenset(data.get("links") or ()),
            fetched_at=_parse_ts(data.get("fetched_at")),
            error=data.get("error"),
        )


@dataclass(slots=True)
class CacheEntry:
    """A cached :class:`PageRecord` plus the moment it was written."""

    record: PageRecord
    timestamp: datetime

    @property
    def url(self) -> str:
        return self.record.url

    def age_seconds(self, now: datetime) -> float:
        return (now - self.timestamp).total_seconds()

    def is_stale(self, now: datetime, ttl_seconds: float) -> bool:
        return self.age_seconds(now) > ttl_seconds

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CacheEntry:
        timestamp = _parse_ts(data["timestamp"])
        if timestamp is None:
            raise ValueError("cache entry without timestamp")
        return cls(record=PageRecord.from_dict(data), timestamp=timestamp)


@dataclass(slots=True)
class FetchResult:
    """Outcome of one :meth:`Fetcher.fetch` call (after all retries)."""

    url: str
    status: Optional[int] = None
    text: str = ""
    error: Optional[str] = None
    attempts: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    #: URL the response was served from after redirects; relative links resolve against it
    final_url: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
