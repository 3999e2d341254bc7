# === FILE: site_corpus/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import logging
import random
import time
from collections import deque
from typing import Any, Callable, Deque, List, Optional, Set, Tuple, TypeVar

from aiohttp import ClientSession, ClientTimeout

from site_corpus.aggregator import CrawlReport
from site_corpus.cache.store import CacheStore
from site_corpus.config import CrawlerConfig
from site_corpus.crawler.fetcher import Fetcher
from site_corpus.crawler.link_extractor import normalize_url
from site_corpus.crawler.models import PageRecord
from site_corpus.crawler.policy import PolitenessPolicy, load_robots
from site_corpus.crawler.robots import RobotsRuleset
from site_corpus.parser.html_parser import extract

__all__ = ("AsyncCrawler",)

T = TypeVar("T")


class AsyncCrawler:
    """Обход сайта в ширину: robots.txt, кэш, пакетная загрузка и вежливые паузы.

    Фронтир и множество посещённых URL меняются только в :meth:`crawl`
    между пакетами; задачи пакета лишь возвращают записи.
    """

    def __init__(
        self,
        config: CrawlerConfig,
        cache: Optional[CacheStore] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.cache = cache if cache is not None else CacheStore.from_config(config)
        self.session: Optional[ClientSession] = None
        self.fetcher: Optional[Fetcher] = None
        self.policy = PolitenessPolicy(ignore_patterns=config.ignore_patterns)
        self.logger = logging.getLogger("SiteCorpus.crawler")
        self._rng = rng or random.Random()
        self._owns_session = False

        self.frontier: Deque[str] = deque()
        self.visited: Set[str] = set()
        self.report = CrawlReport()

    async def __aenter__(self) -> AsyncCrawler:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.timeout),
                raise_for_status=False,
            )
            self._owns_session = True
        self.fetcher = Fetcher(self.session, self.config, rng=self._rng)
        await self._load_robots()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    @property
    def root_url(self) -> str:
        root = normalize_url(str(self.config.base_url))
        if root is None:
            raise ValueError(f"base_url is not crawlable: {self.config.base_url}")
        return root

    async def crawl(self) -> List[PageRecord]:
        """Run the crawl to completion and return records in visit order."""
        if self.fetcher is None:
            raise RuntimeError("Crawler not started; use 'async with AsyncCrawler(...)'")
        self.logger.info("Старт обхода: %s (лимит %d страниц)", self.config.base_url, self.config.max_pages)
        start = time.monotonic()

        self.frontier = deque([self.root_url])
        self.visited = set()
        self.report = CrawlReport()
        queued: Set[str] = {self.root_url}

        while self.frontier and len(self.visited) < self.config.max_pages:
            batch = self._next_batch(queued)
            if not batch:
                continue
            outcomes = await asyncio.gather(*(self._process(url) for url in batch))
            # the whole batch is visited before its links are enqueued
            self.visited.update(batch)
            touched_network = not all(from_cache for _, from_cache in outcomes)
            for record, _ in outcomes:
                if not record.ok:
                    self.report.failed.append(record)
                    continue
                self.report.pages.append(record)
                for link in sorted(record.links):
                    canonical = normalize_url(link)
                    if canonical is None or canonical in self.visited or canonical in queued:
                        continue
                    self.frontier.append(canonical)
                    queued.add(canonical)
            if touched_network and self.frontier and len(self.visited) < self.config.max_pages:
                await self._politeness_pause()

        self.report.visited = len(self.visited)
        self.report.elapsed = time.monotonic() - start
        duration = self.report.elapsed
        pages = len(self.report.pages)
        self.logger.info(
            "Завершено: %d страниц за %.2f с (%.2f стр/с), из кэша %d, ошибок %d",
            pages, duration, pages / duration if duration else 0,
            self.report.cache_hits, len(self.report.failed),
        )
        if self.report.disallowed:
            self.logger.info("Заблокировано политикой: %d", len(self.report.disallowed))
        return list(self.report.pages)

    def _next_batch(self, queued: Set[str]) -> List[str]:
        """Pop up to batch_size fetchable URLs; rejected ones are marked visited."""
        batch: List[str] = []
        while (
            self.frontier
            and len(batch) < self.config.batch_size
            and len(self.visited) + len(batch) < self.config.max_pages
        ):
            url = self.frontier.popleft()
            queued.discard(url)
            if url in self.visited or url in batch:
                continue
            if not self.policy.is_allowed(url):
                self.logger.debug("Disallowed: %s", url)
                self.visited.add(url)
                self.report.disallowed.append(url)
                continue
            batch.append(url)
        return batch

    async def _process(self, url: str) -> Tuple[PageRecord, bool]:
        """Cache lookup, else fetch + extract + persist. Returns (record, from_cache)."""
        entry = await self._cache_io(self.cache.get, url)
        if entry is not None:
            self.logger.debug("Cache hit: %s", url)
            self.report.cache_hits += 1
            return entry.record, True

        if self.fetcher is None:
            raise RuntimeError("Crawler not started; use 'async with AsyncCrawler(...)'")
        result = await self.fetcher.fetch(url)
        self.report.fetched += 1
        if not result.ok:
            return PageRecord.failed(url, result.error or "fetch failed"), False

        record = extract(result.text, url, origin=self.config.origin, base_url=result.final_url)
        if not record.ok:
            self.logger.warning("Extraction failed for %s: %s", url, record.error)
            return record, False
        await self._cache_io(self.cache.put, url, record)
        return record, False

    async def _cache_io(self, func: Callable[..., T], *args: Any) -> T:
        """File-backed cache calls run in a worker thread to keep the loop free."""
        if self.cache.files is None:
            return func(*args)
        return await asyncio.to_thread(func, *args)

    async def _politeness_pause(self) -> None:
        delay = self._rng.uniform(self.config.batch_delay_min, self.config.batch_delay_max)
        if self.policy.crawl_delay:
            delay = max(delay, self.policy.crawl_delay)
        if delay > 0:
            self.logger.debug("Pause %.2f s before next batch", delay)
            await asyncio.sleep(delay)

    async def _load_robots(self) -> None:
        if not self.config.respect_robots:
            self.policy.rules = RobotsRuleset.empty()
            return
        if self.session is None or self.fetcher is None:
            raise RuntimeError("robots.txt requested before the HTTP session was opened")
        self.policy.rules = await load_robots(
            self.session,
            str(self.config.base_url),
            user_agent=self.config.robots_agent,
            headers=self.fetcher.build_headers(),
        )
