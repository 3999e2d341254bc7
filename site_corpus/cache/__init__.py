# File: site_corpus/cache/__init__.py
"""site_corpus.cache: TTL-кэш записей страниц (память и файлы)."""

from .store import CacheStore, FileCache, MemoryCache, cache_filename

__all__ = ["CacheStore", "FileCache", "MemoryCache", "cache_filename"]
