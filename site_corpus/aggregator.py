# File: site_corpus/aggregator.py
"""site_corpus.aggregator: Сборка текстового корпуса из записей страниц."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from site_corpus.crawler.models import PageRecord

PAGE_DELIMITER = "-" * 40


def format_page(record: PageRecord) -> str:
    """Форматирует одну страницу как блок корпуса."""
    lines: List[str] = [f"PAGE: {record.url}"]
    if record.title:
        lines.append(f"TITLE: {record.title}")
    lines.append(f"META DESCRIPTION: {record.meta_description}")
    lines.extend(f"H{level}: {text}" for level, text in record.headings)
    lines += ["", "CONTENT:", record.content, "", "LINKS:"]
    lines.extend(sorted(record.links))
    lines.append(PAGE_DELIMITER)
    return "\n".join(lines) + "\n"


def build_corpus(records: Iterable[PageRecord]) -> str:
    """Склеивает страницы с непустым контентом; пустая строка, если таких нет.

    Повторяющиеся URL попадают в корпус один раз (первое вхождение).
    """
    seen: set[str] = set()
    blocks: List[str] = []
    for record in records:
        if not record.has_content or record.url in seen:
            continue
        seen.add(record.url)
        blocks.append(format_page(record))
    return "\n".join(blocks)


@dataclass(slots=True)
class CrawlReport:
    """Результат одного обхода: записи страниц и статистика."""

    pages: List[PageRecord] = field(default_factory=list)
    failed: List[PageRecord] = field(default_factory=list)
    disallowed: List[str] = field(default_factory=list)
    cache_hits: int = 0
    fetched: int = 0
    visited: int = 0
    elapsed: float = 0.0

    @property
    def corpus(self) -> str:
        return build_corpus(self.pages)

    def summary(self) -> dict:
        return {
            "pages": len(self.pages),
            "with_content": sum(1 for p in self.pages if p.has_content),
            "failed": len(self.failed),
            "disallowed": len(self.disallowed),
            "cache_hits": self.cache_hits,
            "fetched": self.fetched,
            "visited": self.visited,
            "elapsed": round(self.elapsed, 3),
        }

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление отчёта без корпуса."""
        output = {
            "summary": self.summary(),
            "pages": [p.to_dict() for p in self.pages],
            "failed": [{"url": p.url, "error": p.error} for p in self.failed],
            "disallowed": self.disallowed,
        }
        return json.dumps(output, ensure_ascii=False, indent=2 if pretty else None)


def corpus_or_none(records: Iterable[PageRecord]) -> Optional[str]:
    corpus = build_corpus(records)
    return corpus or None


__all__ = ["CrawlReport", "build_corpus", "format_page", "corpus_or_none", "PAGE_DELIMITER"]
