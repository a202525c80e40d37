"""
Per-query result cache with a fixed time-to-live.

Entries are keyed by the exact query key (collection, page, filter, search
term...). Each entry is fetched and expires independently. Expired entries are
dropped when read and whenever a new entry is stored. The only explicit
invalidation is the synchronous purge a successful mutation triggers for its
collection. Everything runs on one event loop, so no locking is needed.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple, TypeVar

from fiscal_core.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class QueryCache:
    """
    TTL cache for async fetch results.

    Keys are tuples whose first element is the collection name, which is what
    `invalidate_collection` matches on.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        now = self._clock()
        self._purge_expired(now)
        self._entries[key] = (now + self.ttl_seconds, value)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    async def get_or_fetch(self, key: Hashable, fetch: Callable[[], Awaitable[T]]) -> T:
        """
        Return the cached value for `key` or await `fetch()` and store it.

        Failures are not cached.
        """
        cached = self.get(key)
        if cached is not None:
            log.debug("[CACHE HIT]", extra={"cache_key": repr(key)})
            return cached
        value = await fetch()
        self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def invalidate_collection(self, collection: str) -> int:
        """Drop every entry whose key starts with `collection`. Returns the count."""
        doomed = [
            key
            for key in self._entries
            if isinstance(key, tuple) and key and key[0] == collection
        ]
        for key in doomed:
            del self._entries[key]
        if doomed:
            log.debug(
                f"[CACHE INVALIDATED] {collection}",
                extra={"collection": collection, "entries": len(doomed)},
            )
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["QueryCache"]
