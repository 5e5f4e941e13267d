"""In-memory TTL cache for weather snapshots."""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from weatherdesk.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value and the clock reading when it was fetched."""

    value: T
    fetched_at: float


class TTLCache(Generic[T]):
    """Bounded cache whose entries are valid for ``ttl_seconds`` after fetch.

    Age is checked on every read. A stale entry is dropped on that read.
    When full, inserting a new key evicts the oldest fetch.
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float = 600,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock
        self._entries: OrderedDict[str, CacheEntry[T]] = OrderedDict()

    def get(self, key: str) -> T | None:
        """Get a fresh value for ``key``.

        Returns:
            The cached value, or None if absent or stale
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("cache_miss", cache=self.name, key=key)
            return None

        age = self.clock() - entry.fetched_at
        if age >= self.ttl_seconds:
            del self._entries[key]
            logger.info("cache_expired", cache=self.name, key=key, age=round(age, 1))
            return None

        logger.debug("cache_hit", cache=self.name, key=key, age=round(age, 1))
        return entry.value

    def set(self, key: str, value: T) -> None:
        """Store ``value`` under ``key`` stamped with the current clock."""
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(value=value, fetched_at=self.clock())

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.info("cache_evicted", cache=self.name, key=evicted)

    def entry(self, key: str) -> CacheEntry[T] | None:
        """Raw entry without an age check."""
        return self._entries.get(key)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
