# site_corpus/crawler/fetcher.py
"""
Fetcher module: one page GET with browser headers, randomized delay,
timeout and retry/backoff.
"""
from __future__ import annotations

import asyncio
import random
from typing import Dict, Optional

from aiohttp import ClientError, ClientSession

from site_corpus.config import CrawlerConfig
from site_corpus.crawler.models import FetchResult
from site_corpus.logger import get_logger

logger = get_logger("fetcher")

_BROWSER_HEADERS: Dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}

_HTML_TYPES = ("text/html", "application/xhtml+xml")


class RetryableFetchError(Exception):
    """Non-2xx status: counted as a failed attempt."""

    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status


class Fetcher:
    """Handles HTTP fetching with rotating user agent, retries/backoff and timeout."""

    def __init__(
        self,
        session: ClientSession,
        config: CrawlerConfig,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.session = session
        self.config = config
        self._rng = rng or random.Random()

    def random_user_agent(self) -> str:
        return self._rng.choice(self.config.user_agents)

    def build_headers(self) -> Dict[str, str]:
        headers = dict(_BROWSER_HEADERS)
        headers["User-Agent"] = self.random_user_agent()
        return headers

    def backoff_delay(self, retry: int) -> float:
        """Pause before retry number *retry* (0-based): base * 2**retry + jitter."""
        jitter = self._rng.uniform(0, self.config.backoff_jitter) if self.config.backoff_jitter else 0.0
        return self.config.backoff_base * (2**retry) + jitter

    def request_delay(self) -> float:
        return self._rng.uniform(self.config.request_delay_min, self.config.request_delay_max)

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch *url*, retrying up to ``config.max_retries`` times.

        Returns a FetchResult with the markup on success, or with ``error``
        set once all attempts are exhausted. Never raises for network errors.
        """
        delay = self.request_delay()
        if delay > 0:
            await asyncio.sleep(delay)

        attempts = 0
        last_status: Optional[int] = None
        while True:
            attempts += 1
            try:
                async with self.session.get(url, headers=self.build_headers()) as resp:
                    last_status = resp.status
                    if not 200 <= resp.status < 300:
                        raise RetryableFetchError(resp.status)
                    ctype = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                    if ctype and ctype not in _HTML_TYPES:
                        # wrong type is not going to change on retry
                        return FetchResult(
                            url=url,
                            status=resp.status,
                            error=f"unsupported content type {ctype}",
                            attempts=attempts,
                        )
                    text = await resp.text(errors="replace")
                    return FetchResult(
                        url=url,
                        status=resp.status,
                        text=text,
                        attempts=attempts,
                        headers={k: v for k, v in resp.headers.items()},
                        final_url=str(resp.url),
                    )
            except (ClientError, asyncio.TimeoutError, RetryableFetchError) as exc:
                error = str(exc) or type(exc).__name__
                if attempts > self.config.max_retries:
                    logger.warning("Failed %s after %d attempts: %s", url, attempts, error)
                    return FetchResult(url=url, status=last_status, error=error, attempts=attempts)
                backoff = self.backoff_delay(attempts - 1)
                logger.debug(
                    "Retry %d/%d for %s after %.2f s (%s)",
                    attempts, self.config.max_retries, url, backoff, error,
                )
                await asyncio.sleep(backoff)
