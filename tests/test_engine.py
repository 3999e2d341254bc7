# File: tests/test_engine.py
import pytest
import pytest_asyncio
from aiohttp import web
from pydantic import ValidationError

from conftest import html_page, serve_app
from site_corpus.cache.store import CacheStore
from site_corpus.engine import Engine


@pytest_asyncio.fixture
async def small_site(unused_tcp_port):
    app = web.Application()

    async def root(_):
        return html_page('<p>Home text.</p><a href="/about">About</a>', title="Home")

    async def about(_):
        return html_page("<p>About text.</p>", title="About")

    app.router.add_get("/", root)
    app.router.add_get("/about", about)
    async for url in serve_app(app, unused_tcp_port):
        yield url


@pytest.mark.asyncio()
async def test_scrape_website_returns_corpus(make_config, small_site, clock):
    engine = Engine(make_config(small_site), cache=CacheStore(backend="memory", clock=clock))
    corpus = await engine.scrape_website()

    assert f"PAGE: {small_site}/\n" in corpus
    assert f"PAGE: {small_site}/about\n" in corpus
    assert "TITLE: About" in corpus
    assert engine.last_report.summary()["pages"] == 2
    assert engine.last_scraped == clock.now


@pytest.mark.asyncio()
async def test_scrape_website_empty_when_site_down(make_config, unused_tcp_port):
    config = make_config(f"http://127.0.0.1:{unused_tcp_port}")
    engine = Engine(config, cache=CacheStore(backend="memory"))
    assert await engine.scrape_website() == ""


@pytest.mark.asyncio()
async def test_load_all_cached_content(make_config, small_site, tmp_path, clock):
    config = make_config(small_site, cache_dir=tmp_path / "c", cache_ttl_hours=1)
    engine = Engine(config, cache=CacheStore.from_config(config, clock=clock))
    assert engine.load_all_cached_content() is None

    corpus = await engine.scrape_website()
    assert engine.load_all_cached_content() == corpus

    # a fresh process sees the durable cache
    restarted = Engine(config, cache=CacheStore.from_config(config, clock=clock))
    assert restarted.load_all_cached_content() == corpus

    clock.advance(hours=2)
    assert engine.load_all_cached_content() is None


@pytest.mark.asyncio()
async def test_status_and_clear(make_config, small_site):
    engine = Engine(make_config(small_site))
    await engine.scrape_website()

    status = engine.get_cache_status()
    assert status["count"] == 2
    assert sorted(status["keys"]) == [f"{small_site}/", f"{small_site}/about"]
    assert len(status["files"]) == 2

    assert engine.clear_cache() == {"removed": 2}
    assert engine.get_cache_status()["count"] == 0
    assert engine.load_all_cached_content() is None


@pytest.mark.asyncio()
async def test_storage_report(make_config, small_site):
    engine = Engine(make_config(small_site))
    await engine.scrape_website()

    report = engine.storage_report()
    assert report["memory_entries"] == 2
    assert report["file_count"] == 2
    assert len(report["sample_files"]) == 2
    assert {s["url"] for s in report["sample_files"]} == {f"{small_site}/", f"{small_site}/about"}
    assert report["corpus_size"] > 0


@pytest.mark.asyncio()
async def test_cached_content_scoped_to_current_site(make_config, small_site):
    engine = Engine(make_config(small_site))
    await engine.scrape_website()
    assert engine.load_all_cached_content() is not None

    engine.update_config(base_url="https://other.example.org")
    assert engine.load_all_cached_content() is None
    assert engine.storage_report()["corpus_size"] == 0

    # a second site sharing the cache directory does not see the first one's pages
    other = Engine(make_config("https://other.example.org"))
    assert other.load_all_cached_content() is None
    assert other.get_cache_status()["files"]


def test_update_config(make_config, tmp_path):
    engine = Engine(make_config())
    cache = engine.cache

    updated = engine.update_config({"max_pages": 5}, cache_ttl_hours=2, base_url="https://other.example.org/")
    assert updated.max_pages == 5
    assert engine.config.origin == "https://other.example.org"
    assert engine.cache is cache
    assert cache.ttl == 7200

    engine.update_config(cache_dir=str(tmp_path / "elsewhere"))
    assert engine.cache is not cache
    assert engine.cache.cache_dir == tmp_path / "elsewhere"


def test_update_config_rejects_invalid(make_config):
    engine = Engine(make_config())
    with pytest.raises(ValidationError):
        engine.update_config(max_pages=0)
    with pytest.raises(ValidationError):
        engine.update_config(unknown_field=1)
    assert engine.config.max_pages == 20
