# site_corpus/__init__.py
"""
SiteCorpus package initializer.
Defines package version and exposes the public crawler/cache API.
"""
__version__ = "0.1.0"

from site_corpus.cache.store import CacheStore
from site_corpus.config import CrawlerConfig, load_config
from site_corpus.crawler.models import CacheEntry, PageRecord
from site_corpus.engine import Engine

__all__ = ["__version__", "CacheStore", "CacheEntry", "CrawlerConfig", "Engine", "PageRecord", "load_config"]
