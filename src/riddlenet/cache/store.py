"""TTL-keyed cache stores for resource payloads.

:class:`CacheStore` holds the whole expiry policy: every value is wrapped in
a :class:`~riddlenet.models.CacheEntry` recording when it was stored and
its TTL, and :meth:`CacheStore.get` evicts an expired entry as a side effect
of the read. There is no background sweep.

Two backends are provided:

- :class:`DiskCacheStore` -- persists entries in a :mod:`diskcache`
  directory so they survive between CLI invocations. Backend failures are
  raised as :class:`~riddlenet.exceptions.CacheUnavailableError`.
- :class:`MemoryCacheStore` -- a plain dict, used when caching is disabled
  and as the in-memory substitute in tests.

Every operation on a key runs under that key's own lock, so a reader never
sees a half-written entry while independent keys never contend.
"""

from __future__ import annotations

import sqlite3
import threading
import time
import weakref
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import diskcache

from riddlenet.exceptions import CacheUnavailableError
from riddlenet.models import CacheConfig, CacheEntry
from riddlenet.output import get_output

Clock = Callable[[], float]


class CacheStore(ABC):
    """Key to :class:`~riddlenet.models.CacheEntry` mapping with lazy expiry.

    Subclasses implement the raw storage primitives (``_read``, ``_write``,
    ``_remove``, ``_keys``, ``_clear``); this class implements the public
    contract on top of them.

    Args:
        clock: Returns the current wall-clock time in seconds. Injected in
            tests to move time forward without sleeping.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or time.time
        # A key's lock lives only while some operation holds it.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store *value* under *key*, replacing any existing entry.

        Args:
            key: Cache key (see :func:`riddlenet.cache.keys.cache_key`).
            value: Any picklable payload.
            ttl: Seconds the entry stays valid, or ``None`` for no expiry.

        Raises:
            ValueError: If *ttl* is negative.
        """
        if ttl is not None and ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        entry = CacheEntry(payload=value, stored_at=self._clock(), ttl=ttl)
        with self._lock_for(key):
            self._write(key, entry)

    def get(self, key: str) -> Any:
        """Return the value stored under *key*, or ``None`` when absent or expired.

        An expired entry is removed before returning, so later lookups see
        it as absent too.
        """
        with self._lock_for(key):
            entry = self._read(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                self._remove(key)
                return None
            return entry.payload

    def invalidate(self, key: str) -> None:
        """Remove *key*. Removing an absent key is a no-op."""
        with self._lock_for(key):
            self._remove(key)

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove every key starting with *prefix* and return how many were removed."""
        removed = 0
        for key in list(self._keys()):
            if not key.startswith(prefix):
                continue
            with self._lock_for(key):
                if self._remove(key):
                    removed += 1
        return removed

    def invalidate_all(self) -> None:
        """Remove every entry."""
        self._clear()

    def stats(self) -> dict[str, Any]:
        """Return a ``dict`` describing the store (backend, size, ...)."""
        return {"backend": type(self).__name__, "size": len(self)}

    def close(self) -> None:
        """Release backend resources. The default implementation does nothing."""

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @abstractmethod
    def __len__(self) -> int: ...

    # ------------------------------------------------------------------ #
    # Backend primitives
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _read(self, key: str) -> Optional[CacheEntry]: ...

    @abstractmethod
    def _write(self, key: str, entry: CacheEntry) -> None: ...

    @abstractmethod
    def _remove(self, key: str) -> bool:
        """Delete *key*; return ``True`` if it existed."""

    @abstractmethod
    def _keys(self) -> Iterator[str]: ...

    @abstractmethod
    def _clear(self) -> None: ...

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


class MemoryCacheStore(CacheStore):
    """In-process store backed by a ``dict``. Nothing outlives the process."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _read(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def _write(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def _remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def _keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def _clear(self) -> None:
        self._entries.clear()


class DiskCacheStore(CacheStore):
    """Persistent store backed by a :class:`diskcache.Cache` directory.

    The directory is created if it does not exist. Any error raised by the
    SQLite index or the filesystem is re-raised as
    :class:`~riddlenet.exceptions.CacheUnavailableError`.

    Args:
        directory: Directory holding the cache files.
        clock: Wall-clock source, see :class:`CacheStore`.

    Example::

        store = DiskCacheStore("/tmp/riddlenet-cache")
        store.put("riddle_r1", {"success": True, "data": {...}}, ttl=3600)
        store.get("riddle_r1")
    """

    def __init__(self, directory: str | Path, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._directory = Path(directory)
        try:
            self._cache = diskcache.Cache(str(self._directory))
        except (OSError, sqlite3.Error) as exc:
            raise CacheUnavailableError(
                f"Cannot open cache directory {self._directory}: {exc}"
            ) from exc

    @property
    def directory(self) -> Path:
        return self._directory

    def __len__(self) -> int:
        return self._guard(lambda: len(self._cache))

    def stats(self) -> dict[str, Any]:
        info = super().stats()
        info["directory"] = str(self._directory)
        return info

    def close(self) -> None:
        self._cache.close()

    def _read(self, key: str) -> Optional[CacheEntry]:
        value = self._guard(lambda: self._cache.get(key))
        if value is None:
            return None
        if not isinstance(value, CacheEntry):
            # Written by something other than this store.
            self._remove(key)
            return None
        return value

    def _write(self, key: str, entry: CacheEntry) -> None:
        self._guard(lambda: self._cache.set(key, entry))

    def _remove(self, key: str) -> bool:
        return bool(self._guard(lambda: self._cache.delete(key)))

    def _keys(self) -> Iterator[str]:
        return iter(self._guard(lambda: [k for k in self._cache.iterkeys() if isinstance(k, str)]))

    def _clear(self) -> None:
        self._guard(self._cache.clear)

    def _guard(self, operation: Callable[[], Any]) -> Any:
        try:
            return operation()
        except (OSError, sqlite3.Error, diskcache.Timeout) as exc:
            raise CacheUnavailableError(f"Cache backend failure: {exc}") from exc


def open_cache_store(
    config: CacheConfig,
    default_directory: Path,
    clock: Optional[Clock] = None,
) -> CacheStore:
    """Create the cache store described by *config*.

    Returns a :class:`DiskCacheStore` when caching is enabled, falling back
    to a :class:`MemoryCacheStore` (with a warning) when the directory
    cannot be opened. Returns a :class:`MemoryCacheStore` when disabled.
    """
    if not config.enabled:
        return MemoryCacheStore(clock)
    directory = Path(config.directory) if config.directory else default_directory
    try:
        return DiskCacheStore(directory, clock)
    except CacheUnavailableError as exc:
        get_output().warning(f"{exc}; caching in memory only")
        return MemoryCacheStore(clock)
