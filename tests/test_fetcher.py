# File: tests/test_fetcher.py
import random

import pytest
from aiohttp import ClientSession, ClientTimeout, web

from conftest import html_page, serve_app
from site_corpus.crawler.fetcher import Fetcher


async def _fetch(config, url):
    async with ClientSession(timeout=ClientTimeout(total=config.timeout)) as session:
        return await Fetcher(session, config).fetch(url)


@pytest.mark.asyncio()
async def test_fetch_success_sends_browser_headers(make_config, unused_tcp_port):
    seen = {}

    async def handler(request):
        seen.update(request.headers)
        return html_page("<p>Hi</p>")

    app = web.Application()
    app.router.add_get("/", handler)
    async for base in serve_app(app, unused_tcp_port):
        config = make_config(base, user_agents=["AgentA/1.0", "AgentB/2.0"])
        result = await _fetch(config, f"{base}/")

    assert result.ok
    assert result.status == 200
    assert "<p>Hi</p>" in result.text
    assert result.attempts == 1
    assert result.final_url == f"{base}/"
    assert seen["User-Agent"] in ("AgentA/1.0", "AgentB/2.0")
    assert seen["Accept"].startswith("text/html")


@pytest.mark.asyncio()
async def test_retry_then_success(make_config, unused_tcp_port):
    calls = {"n": 0}

    async def flaky(_):
        calls["n"] += 1
        if calls["n"] <= 2:
            return web.Response(status=500)
        return html_page("<p>Recovered</p>")

    app = web.Application()
    app.router.add_get("/flaky", flaky)
    async for base in serve_app(app, unused_tcp_port):
        result = await _fetch(make_config(base, max_retries=3), f"{base}/flaky")

    assert result.ok
    assert calls["n"] == 3
    assert result.attempts == 3


@pytest.mark.asyncio()
async def test_terminal_failure_after_retries(make_config, unused_tcp_port):
    calls = {"n": 0}

    async def missing(_):
        calls["n"] += 1
        return web.Response(status=404)

    app = web.Application()
    app.router.add_get("/missing", missing)
    async for base in serve_app(app, unused_tcp_port):
        result = await _fetch(make_config(base, max_retries=3), f"{base}/missing")

    assert not result.ok
    assert result.status == 404
    assert "404" in result.error
    assert calls["n"] == 4


@pytest.mark.asyncio()
async def test_connection_error_is_a_failure(make_config, unused_tcp_port):
    config = make_config(f"http://127.0.0.1:{unused_tcp_port}", max_retries=1)
    result = await _fetch(config, f"http://127.0.0.1:{unused_tcp_port}/")
    assert not result.ok
    assert result.attempts == 2


@pytest.mark.asyncio()
async def test_non_html_is_not_retried(make_config, unused_tcp_port):
    calls = {"n": 0}

    async def image(_):
        calls["n"] += 1
        return web.Response(body=b"\x89PNG", content_type="image/png")

    app = web.Application()
    app.router.add_get("/logo", image)
    async for base in serve_app(app, unused_tcp_port):
        result = await _fetch(make_config(base, max_retries=3), f"{base}/logo")

    assert not result.ok
    assert "image/png" in result.error
    assert calls["n"] == 1


def test_backoff_doubles_with_bounded_jitter(make_config):
    config = make_config(backoff_base=2.0, backoff_jitter=1.0)
    fetcher = Fetcher(session=None, config=config, rng=random.Random(7))
    for retry, base in enumerate((2.0, 4.0, 8.0)):
        delay = fetcher.backoff_delay(retry)
        assert base <= delay <= base + 1.0


def test_request_delay_within_configured_range(make_config):
    config = make_config(request_delay_min=1.0, request_delay_max=5.0)
    fetcher = Fetcher(session=None, config=config, rng=random.Random(1))
    assert all(1.0 <= fetcher.request_delay() <= 5.0 for _ in range(50))
