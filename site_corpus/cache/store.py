# File: site_corpus/cache/store.py
"""site_corpus.cache.store: TTL-кэш записей страниц в памяти и/или в файлах.

Память — источник истины для работающего процесса, файлы переживают
перезапуск. Любая ошибка ввода-вывода на файловом пути логируется и
превращается в промах кэша (чтение) или молча теряется (запись).
"""
from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from site_corpus.crawler.models import CacheEntry, PageRecord
from site_corpus.logger import get_logger

logger = get_logger("cache")

Clock = Callable[[], datetime]

_SLUG_RE = re.compile(r"[^a-z0-9]+")
_CORRUPT_ERRORS = (ValueError, KeyError, TypeError)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def cache_filename(url: str) -> str:
    """Readable slug of *url* plus a SHA-256 prefix; unique per canonical URL."""
    slug = _SLUG_RE.sub("_", url.lower()).strip("_")[:80]
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
    return f"{slug}_{digest}.json"


class MemoryCache:
    """Словарь URL -> CacheEntry внутри процесса."""

    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, url: str) -> Optional[CacheEntry]:
        return self._entries.get(url)

    def put(self, entry: CacheEntry) -> None:
        self._entries[entry.url] = entry

    def discard(self, url: str) -> None:
        self._entries.pop(url, None)

    def entries(self) -> List[CacheEntry]:
        return list(self._entries.values())

    def keys(self) -> List[str]:
        return list(self._entries)

    def clear(self) -> List[str]:
        keys = list(self._entries)
        self._entries.clear()
        return keys


class FileCache:
    """Один JSON-файл на канонический URL; запись атомарна (tmp + os.replace)."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def path_for(self, url: str) -> Path:
        return self.directory / cache_filename(url)

    def get(self, url: str) -> Optional[CacheEntry]:
        path = self.path_for(url)
        if not path.is_file():
            return None
        entry = self.read(path)
        if entry is not None and entry.url != url:
            logger.warning("Cache file %s belongs to %s, not %s", path.name, entry.url, url)
            return None
        return entry

    def put(self, entry: CacheEntry) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(entry.url)
        payload = json.dumps(entry.to_dict(), ensure_ascii=False, indent=2)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=".tmp_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def files(self) -> List[Path]:
        if not self.directory.is_dir():
            return []
        return sorted(p for p in self.directory.glob("*.json") if not p.name.startswith(".tmp_"))

    def entries(self) -> Iterator[CacheEntry]:
        for path in self.files():
            entry = self.read(path)
            if entry is not None:
                yield entry

    def remove(self, path: Path) -> None:
        path.unlink(missing_ok=True)

    @staticmethod
    def read(path: Path) -> Optional[CacheEntry]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry.from_dict(data)
        except OSError as exc:
            logger.warning("Could not read cache file %s: %s", path, exc)
        except _CORRUPT_ERRORS as exc:
            logger.warning("Corrupt cache file %s: %s", path, exc)
        return None


class CacheStore:
    """Per-URL cache of :class:`PageRecord` with a time-to-live.

    Parameters
    ----------
    ttl
        Maximum age (seconds or :class:`timedelta`) before an entry counts
        as absent.
    cache_dir
        Directory of the file backend; ignored for ``backend="memory"``.
    backend
        ``"memory"``, ``"file"`` or ``"both"`` (dual write, memory first on read).
    clock
        Callable returning the current aware datetime; tests pass a fake one.
    """

    def __init__(
        self,
        ttl: Union[float, timedelta] = timedelta(hours=24),
        cache_dir: Union[str, Path, None] = None,
        backend: str = "both",
        clock: Clock = utcnow,
    ) -> None:
        if backend not in ("memory", "file", "both"):
            raise ValueError(f"unknown cache backend: {backend}")
        if backend != "memory" and cache_dir is None:
            raise ValueError(f"cache_dir is required for backend {backend!r}")
        self.ttl = ttl
        self.backend = backend
        self.clock = clock
        self.memory: Optional[MemoryCache] = MemoryCache() if backend in ("memory", "both") else None
        self.files: Optional[FileCache] = FileCache(cache_dir) if backend in ("file", "both") else None

    @classmethod
    def from_config(cls, config, clock: Clock = utcnow) -> CacheStore:
        return cls(
            ttl=config.cache_ttl_seconds,
            cache_dir=config.cache_dir,
            backend=config.cache_backend,
            clock=clock,
        )

    @property
    def ttl(self) -> float:
        return self._ttl

    @ttl.setter
    def ttl(self, value: Union[float, timedelta]) -> None:
        seconds = value.total_seconds() if isinstance(value, timedelta) else float(value)
        if seconds <= 0:
            raise ValueError("ttl must be positive")
        self._ttl = seconds

    @property
    def cache_dir(self) -> Optional[Path]:
        return self.files.directory if self.files else None

    def _fresh(self, entry: Optional[CacheEntry], now: datetime) -> bool:
        return entry is not None and not entry.is_stale(now, self._ttl)

    def get(self, url: str) -> Optional[CacheEntry]:
        """Fresh entry for *url*, or None if missing, stale or unreadable."""
        now = self.clock()
        if self.memory is not None:
            entry = self.memory.get(url)
            if self._fresh(entry, now):
                return entry
            if entry is not None:
                self.memory.discard(url)
        if self.files is not None:
            try:
                entry = self.files.get(url)
            except OSError as exc:
                logger.warning("Cache read failed for %s: %s", url, exc)
                return None
            if self._fresh(entry, now):
                if self.memory is not None:
                    self.memory.put(entry)
                return entry
        return None

    def put(self, url: str, record: PageRecord) -> CacheEntry:
        """Store *record* under *url* with the current timestamp (overwrites)."""
        if record.url != url:
            raise ValueError(f"record url {record.url} does not match key {url}")
        entry = CacheEntry(record=record, timestamp=self.clock())
        if self.memory is not None:
            self.memory.put(entry)
        if self.files is not None:
            try:
                self.files.put(entry)
            except OSError as exc:
                logger.warning("Cache write failed for %s: %s", url, exc)
        return entry

    def list_all(self) -> List[CacheEntry]:
        """All fresh entries; memory wins over files for the same URL."""
        now = self.clock()
        found: Dict[str, CacheEntry] = {}
        if self.memory is not None:
            for entry in self.memory.entries():
                if self._fresh(entry, now):
                    found[entry.url] = entry
        if self.files is not None:
            try:
                for entry in self.files.entries():
                    if entry.url not in found and self._fresh(entry, now):
                        found[entry.url] = entry
            except OSError as exc:
                logger.warning("Cache listing failed: %s", exc)
        return sorted(found.values(), key=lambda e: (e.timestamp, e.url))

    def clear(self) -> int:
        """Remove every entry from all backends; return the number of distinct URLs removed."""
        removed = set()
        if self.memory is not None:
            removed.update(cache_filename(url) for url in self.memory.clear())
        if self.files is not None:
            try:
                for path in self.files.files():
                    self.files.remove(path)
                    removed.add(path.name)
            except OSError as exc:
                logger.warning("Cache clear failed: %s", exc)
        logger.info("Cache cleared: %d entries removed", len(removed))
        return len(removed)

    def status(self) -> Dict[str, object]:
        """Counts and keys for health/debug endpoints."""
        memory_keys = self.memory.keys() if self.memory is not None else []
        try:
            files = [p.name for p in self.files.files()] if self.files is not None else []
        except OSError as exc:
            logger.warning("Cache listing failed: %s", exc)
            files = []
        return {
            "backend": self.backend,
            "count": len(memory_keys) if self.memory is not None else len(files),
            "keys": memory_keys,
            "files": files,
            "cache_dir": str(self.cache_dir) if self.cache_dir else None,
            "ttl_seconds": self._ttl,
        }


__all__ = ["CacheStore", "MemoryCache", "FileCache", "cache_filename", "utcnow"]
