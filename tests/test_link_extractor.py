# File: tests/test_link_extractor.py
import pytest
from bs4 import BeautifulSoup

from site_corpus.crawler.link_extractor import extract_links, is_same_origin, normalize_url

BASE = "https://example.com/"


def test_trailing_slash_variants_are_equal():
    assert normalize_url("/about-us/", BASE) == normalize_url("/about-us", BASE)
    assert normalize_url("/about-us", BASE) == "https://example.com/about-us"


@pytest.mark.parametrize(
    "href",
    ["/about#team", "/about/#team", "https://example.com/about#", "about#x"],
)
def test_fragment_is_stripped(href):
    assert normalize_url(href, BASE) == "https://example.com/about"


def test_root_path_is_kept():
    assert normalize_url("https://example.com") == "https://example.com/"
    assert normalize_url("/", BASE) == "https://example.com/"
    assert normalize_url("https://example.com//") == "https://example.com/"


@pytest.mark.parametrize(
    "url",
    [
        "https://Example.COM/Blog/",
        "/services/web/#top",
        "contact-us",
        "https://example.com/search?q=1#r",
        "http://example.com:8080/a//",
    ],
)
def test_normalize_is_idempotent(url):
    once = normalize_url(url, BASE)
    assert once is not None
    assert normalize_url(once) == once
    assert normalize_url(once, BASE) == once


def test_relative_href_resolves_against_page():
    assert normalize_url("team", "https://example.com/about/") == "https://example.com/about/team"
    assert normalize_url("../blog", "https://example.com/about/team") == "https://example.com/blog"


def test_query_is_preserved():
    assert normalize_url("/search/?q=x", BASE) == "https://example.com/search?q=x"


@pytest.mark.parametrize(
    "href",
    ["mailto:info@example.com", "javascript:void(0)", "tel:+100", "http://[::1", "ftp://example.com/f"],
)
def test_invalid_urls_return_none(href):
    assert normalize_url(href, BASE) is None


def test_same_origin():
    assert is_same_origin("https://example.com/a", "https://example.com")
    assert not is_same_origin("https://example.com.evil.org/a", "https://example.com")
    assert not is_same_origin("http://example.com/a", "https://example.com")


def test_extract_links_keeps_same_origin_set():
    html = """
    <a href="/about-us">About</a>
    <a href="/about-us/">About again</a>
    <a href="https://other.org/x">External</a>
    <a href="mailto:a@b.c">Mail</a>
    <a href="#top">Top</a>
    <a href="http://[::1">Broken</a>
    <a href="services#pricing">Services</a>
    <a>No href</a>
    """
    soup = BeautifulSoup(html, "lxml")
    links = extract_links(soup, "https://example.com/", "https://example.com")
    assert links == {"https://example.com/about-us", "https://example.com/services"}
