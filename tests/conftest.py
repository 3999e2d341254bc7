# File: tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from aiohttp import web

from site_corpus.config import CrawlerConfig


class FakeClock:
    """Manually advanced clock for cache TTL tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_config(tmp_path) -> Callable[..., CrawlerConfig]:
    """
    Build a CrawlerConfig with every delay set to zero, caching into tmp_path.
    """

    def _make(base_url: str = "http://example.com", **overrides: Any) -> CrawlerConfig:
        values: dict[str, Any] = dict(
            base_url=base_url,
            max_pages=20,
            timeout=2.0,
            max_retries=0,
            backoff_base=0.0,
            backoff_jitter=0.0,
            request_delay_min=0.0,
            request_delay_max=0.0,
            batch_delay_min=0.0,
            batch_delay_max=0.0,
            cache_dir=tmp_path / "cache",
        )
        values.update(overrides)
        return CrawlerConfig(**values)

    return _make


def html_page(body: str, title: str = "", status: int = 200) -> web.Response:
    head = f"<head><title>{title}</title></head>" if title else ""
    return web.Response(
        text=f"<html>{head}<body>{body}</body></html>",
        content_type="text/html",
        status=status,
    )


async def serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()
