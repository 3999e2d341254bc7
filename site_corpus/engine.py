# File: site_corpus/engine.py
"""site_corpus.engine: фасад краулера и кэша для чат-слоя, CLI и тестов."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from site_corpus.aggregator import CrawlReport, build_corpus, corpus_or_none
from site_corpus.cache.store import CacheStore
from site_corpus.config import CrawlerConfig, load_config
from site_corpus.crawler.crawler import AsyncCrawler
from site_corpus.crawler.link_extractor import is_same_origin
from site_corpus.crawler.models import PageRecord
from site_corpus.logger import logger

__all__ = ["Engine", "start_scan"]

_CACHE_FIELDS = ("cache_backend", "cache_dir")


class Engine:
    """Фасад: обход сайта, корпус из кэша, состояние и очистка кэша.

    Кэш принадлежит экземпляру Engine и живёт столько же, сколько он;
    его можно передать извне, чтобы разделить между несколькими Engine.
    """

    @staticmethod
    def load_config(path: Optional[str]) -> CrawlerConfig:
        """Загружает конфиг из YAML/JSON."""
        return load_config(path)

    def __init__(self, config: CrawlerConfig, cache: Optional[CacheStore] = None) -> None:
        self.config = config
        self.cache = cache if cache is not None else CacheStore.from_config(config)
        self.last_report: Optional[CrawlReport] = None
        self.last_scraped: Optional[datetime] = None

    async def crawl(self) -> CrawlReport:
        """Полный обход; возвращает отчёт со всеми записями."""
        async with AsyncCrawler(self.config, cache=self.cache) as crawler:
            await crawler.crawl()
            report = crawler.report
        self.last_report = report
        self.last_scraped = self.cache.clock()
        return report

    async def scrape_website(self) -> str:
        """Обходит сайт (или берёт свежий кэш) и возвращает корпус.

        Пустая строка означает, что ни одна страница не дала контента;
        подстановка запасного корпуса остаётся на вызывающей стороне.
        """
        try:
            report = await self.crawl()
        except Exception as exc:
            logger.error("Crawl failed: %s", exc)
            raise
        corpus = report.corpus
        if not corpus:
            logger.warning("Crawl of %s produced no content", self.config.base_url)
        return corpus

    def _site_records(self) -> List[PageRecord]:
        """Свежие записи кэша только для текущего origin (кэш может быть общим)."""
        origin = self.config.origin
        return [entry.record for entry in self.cache.list_all() if is_same_origin(entry.url, origin)]

    def load_all_cached_content(self) -> Optional[str]:
        """Корпус только из свежих записей кэша этого сайта, без сети; None если их нет."""
        return corpus_or_none(self._site_records())

    def get_cache_status(self) -> Dict[str, Any]:
        return self.cache.status()

    def clear_cache(self) -> Dict[str, int]:
        return {"removed": self.cache.clear()}

    def update_config(self, partial: Optional[Mapping[str, Any]] = None, **overrides: Any) -> CrawlerConfig:
        """Применяет частичное обновление конфигурации (валидируется заново)."""
        changes = dict(partial or {})
        changes.update(overrides)
        new_config = self.config.updated(**changes)
        if any(field in changes for field in _CACHE_FIELDS):
            self.cache = CacheStore.from_config(new_config, clock=self.cache.clock)
        else:
            self.cache.ttl = new_config.cache_ttl_seconds
        self.config = new_config
        logger.info("Configuration updated: %s", ", ".join(sorted(changes)) or "no changes")
        return new_config

    def storage_report(self, samples: int = 3) -> Dict[str, Any]:
        """Подробный отчёт о хранилище кэша (для отладки)."""
        status = self.cache.status()
        sample_files: List[Dict[str, Any]] = []
        files = self.cache.files
        if files is not None:
            for path in files.files()[:samples]:
                info: Dict[str, Any] = {"name": path.name}
                try:
                    stat = path.stat()
                    info["size"] = stat.st_size
                    info["modified"] = datetime.fromtimestamp(stat.st_mtime).isoformat()
                except OSError as exc:
                    info["error"] = str(exc)
                    sample_files.append(info)
                    continue
                entry = files.read(path)
                if entry is None:
                    info["error"] = "unreadable"
                else:
                    info["url"] = entry.url
                    info["timestamp"] = entry.timestamp.isoformat()
                    info["preview"] = entry.record.content[:100]
                sample_files.append(info)
        corpus = build_corpus(self._site_records())
        return {
            "memory_entries": len(status["keys"]),
            "memory_keys": status["keys"],
            "cache_dir": status["cache_dir"],
            "file_count": len(status["files"]),
            "sample_files": sample_files,
            "corpus_size": len(corpus),
            "last_scraped": self.last_scraped.isoformat() if self.last_scraped else None,
        }


async def start_scan(cfg: CrawlerConfig, cache: Optional[CacheStore] = None) -> CrawlReport:
    """
    Запускает обход в контексте и возвращает CrawlReport.

    Parameters
    ----------
    cfg : CrawlerConfig
        Конфигурация обхода.
    cache : CacheStore, optional
        Кэш; по умолчанию строится из конфигурации.
    """
    return await Engine(cfg, cache=cache).crawl()
