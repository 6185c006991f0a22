"""
TTL Cache Store
===============

Keyed in-memory store for the last successful snapshot.

- An entry is valid while ``now - timestamp < ttl``
- ``set`` overwrites; ``clear`` evicts everything
- Thread-safe: every read-modify-write happens under one lock
- ``clock`` is injectable (monotonic seconds) so tests can advance time
"""

import time
import logging
import threading
from typing import Callable, Dict, Generic, Optional, TypeVar

from .models import CacheEntry
from .table_config import CACHE_KEY

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 5 * 60


class CacheStore(Generic[T]):
    """
    TTL-keyed in-memory store.

    Usage:
        >>> cache = CacheStore(ttl_seconds=300)
        >>> cache.set("inventory", snapshot)
        >>> cache.is_valid("inventory")
        True
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str = CACHE_KEY) -> Optional[T]:
        """Return the stored payload regardless of age, or None."""
        with self._lock:
            entry = self._entries.get(key)
        return entry.payload if entry is not None else None

    def get_valid(self, key: str = CACHE_KEY) -> Optional[T]:
        """Return the payload only while it is within its TTL."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._age(entry) >= self.ttl_seconds:
                return None
            return entry.payload

    def set(self, key: str, payload: T) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, payload=payload, timestamp=self._clock())
        logger.debug(f"Cache updated for key '{key}'")

    def is_valid(self, key: str = CACHE_KEY) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            valid = entry is not None and self._age(entry) < self.ttl_seconds
        logger.debug(f"Cache validation for '{key}': exists={entry is not None}, valid={valid}")
        return valid

    def has(self, key: str = CACHE_KEY) -> bool:
        with self._lock:
            return key in self._entries

    def age_ms(self, key: str = CACHE_KEY) -> Optional[float]:
        """Age of the entry in milliseconds, or None when absent."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            return self._age(entry) * 1000.0

    def clear(self) -> None:
        with self._lock:
            had_entries = bool(self._entries)
            self._entries.clear()
        logger.info(f"Cache cleared (had entries: {had_entries})")

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def _age(self, entry: CacheEntry) -> float:
        return self._clock() - entry.timestamp
