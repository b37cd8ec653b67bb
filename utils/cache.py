"""Lightweight in-memory TTL cache for the academic portal.

Used for the option lists behind form selects (active programs,
publishers, categories, subjects, quarters) so that opening a form does
not refetch every reference list from the API.
"""

import time
import threading
from typing import Any, Callable, Hashable


class TTLCache:
    """Thread-safe in-memory cache with time-to-live (TTL) expiry.

    Entries expire after ``ttl_seconds`` seconds. A maximum of ``maxsize``
    entries are retained; when the cache is full the entry closest to
    expiry is evicted.

    Usage::

        cache = TTLCache(maxsize=256, ttl_seconds=60)
        programs = cache.get_or_load((token, "programs"), load_programs)
        cache.invalidate(lambda key: key[1] == "programs")
    """

    def __init__(self, maxsize: int = 256, ttl_seconds: float = 60.0) -> None:
        """Initialise the cache.

        Args:
            maxsize: Maximum number of entries to store (default 256).
            ttl_seconds: Seconds before a cached entry expires (default 60).
        """
        self._maxsize = maxsize
        self._ttl = ttl_seconds
        # key -> (value, expires_at)
        self._store: dict[Hashable, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable) -> Any | None:
        """Return cached value for *key*, or ``None`` if absent or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            value, expires_at = entry
            if time.monotonic() > expires_at:
                del self._store[key]
                self._misses += 1
                return None
            self._hits += 1
            return value

    def set(self, key: Hashable, value: Any) -> None:
        """Store *value* under *key* with the configured TTL."""
        expires_at = time.monotonic() + self._ttl
        with self._lock:
            if key not in self._store and len(self._store) >= self._maxsize:
                oldest_key = min(self._store, key=lambda k: self._store[k][1])
                del self._store[oldest_key]
            self._store[key] = (value, expires_at)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value for *key*, calling *loader* on a miss.

        The loader runs outside the lock; exceptions propagate and nothing
        is cached for that key.
        """
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, predicate: Callable[[Hashable], bool]) -> int:
        """Drop every entry whose key satisfies *predicate*.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            doomed = [k for k in self._store if predicate(k)]
            for k in doomed:
                del self._store[k]
            return len(doomed)

    def stats(self) -> dict[str, int]:
        """Return ``hits``, ``misses`` and live ``size``."""
        with self._lock:
            now = time.monotonic()
            expired = [k for k, (_, exp) in self._store.items() if now > exp]
            for k in expired:
                del self._store[k]
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._store),
            }
