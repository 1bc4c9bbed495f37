"""
Freedom API - Caching Client

``CachingClient`` wraps another client and memoises GET responses by exact
URL. Concurrent requests for the same URL are coalesced into a single fetch
whose outcome every caller observes. Failed fetches are never stored, so the
next request for that URL goes back to the server.

Results are wrapped in ``Shared`` containers.

Example:
    >>> client = CachingClient(Client.from_env(), capacity=500)
    >>> a, b = await asyncio.gather(
    ...     client.get_satellite_by_id(710),
    ...     client.get_satellite_by_id(710),
    ... )  # one request reaches the server
"""

import asyncio
import logging
from collections import OrderedDict, defaultdict
from typing import Any, Dict, Optional, Tuple

from .api import Api, URLTypes
from .config import Config
from .container import Shared
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CacheEntry = Tuple[bytes, int]


class CachingClient(Api):
    """Single-flight, capacity-bounded GET cache in front of another client.

    Args:
        client: The client performing the actual requests
        capacity: Maximum number of stored responses; the least recently used
            one is evicted beyond that

    Only 2xx responses are stored. POST and DELETE go straight to the wrapped
    client and do not touch the cache.
    """

    DEFAULT_CAPACITY = 1000

    container = Shared

    def __init__(self, client: Api, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ConfigurationError(f"Cache capacity must be positive, got {capacity}")
        self._inner = client
        self._capacity = capacity
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._pending: Dict[str, "asyncio.Task[CacheEntry]"] = {}
        self._stats: Dict[str, int] = defaultdict(int)

    @classmethod
    def from_env(cls, capacity: int = DEFAULT_CAPACITY) -> "CachingClient":
        """Wrap a ``Client`` built from environment variables."""
        from .client import Client

        return cls(Client.from_env(), capacity=capacity)

    @property
    def inner(self) -> Api:
        """The wrapped client."""
        return self._inner

    @property
    def config(self) -> Config:
        return self._inner.config

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def stats(self) -> Dict[str, int]:
        """Counters: hits, misses, coalesced, evictions, failures."""
        return dict(self._stats)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, url: object) -> bool:
        return str(url) in self._cache

    # =========================================================================
    # Transport
    # =========================================================================

    async def get(self, url: URLTypes) -> CacheEntry:
        key = str(url)

        entry = self._cache.get(key)
        if entry is not None:
            self._cache.move_to_end(key)
            self._stats["hits"] += 1
            logger.debug("Cache hit: %s", key)
            return entry

        # lookup and insert must not be separated by an await
        task = self._pending.get(key)
        if task is None:
            self._stats["misses"] += 1
            logger.debug("Cache miss: %s", key)
            task = asyncio.ensure_future(self._fetch(key, url))
            task.add_done_callback(_consume_exception)
            self._pending[key] = task
        else:
            self._stats["coalesced"] += 1
            logger.debug("Joining in-flight fetch: %s", key)

        # a cancelled waiter must not cancel the fetch shared with the others
        return await asyncio.shield(task)

    async def _fetch(self, key: str, url: URLTypes) -> CacheEntry:
        try:
            body, status = await self._inner.get(url)
        except BaseException:
            self._stats["failures"] += 1
            self._release(key)
            raise

        owned = self._release(key)
        if not 200 <= status < 300:
            self._stats["failures"] += 1
            logger.debug("Not caching %s: status %d", key, status)
        elif owned:
            self._store(key, (body, status))
        return body, status

    def _release(self, key: str) -> bool:
        """Drop the pending marker if it still belongs to the running fetch."""
        if self._pending.get(key) is asyncio.current_task():
            del self._pending[key]
            return True
        return False

    def _store(self, key: str, entry: CacheEntry) -> None:
        self._cache[key] = entry
        self._cache.move_to_end(key)
        while len(self._cache) > self._capacity:
            evicted, _ = self._cache.popitem(last=False)
            self._stats["evictions"] += 1
            logger.debug("Evicted %s", evicted)

    async def post(self, url: URLTypes, body: Any) -> CacheEntry:
        return await self._inner.post(url, body)

    async def delete(self, url: URLTypes) -> CacheEntry:
        return await self._inner.delete(url)

    # =========================================================================
    # Invalidation
    # =========================================================================

    def invalidate_all(self) -> None:
        """Forget every stored response.

        Fetches already in flight still complete for their callers but their
        results are not stored.
        """
        logger.debug("Invalidating %d cached and %d pending entries", len(self._cache), len(self._pending))
        self._cache.clear()
        self._pending.clear()

    def invalidate(self, url: URLTypes) -> bool:
        """Forget the response stored for ``url``.

        Returns:
            True if an entry was removed
        """
        key = str(url)
        removed = self._cache.pop(key, None) is not None
        if self._pending.pop(key, None) is not None:
            removed = True
        if removed:
            logger.debug("Invalidated %s", key)
        return removed

    async def close(self):
        """Close the wrapped client."""
        close = getattr(self._inner, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CachingClient):
            return NotImplemented
        return self._inner == other._inner

    __hash__ = None

    def __repr__(self) -> str:
        return f"CachingClient({self._inner!r}, capacity={self._capacity}, entries={len(self._cache)})"


def _consume_exception(task: "asyncio.Task[Any]") -> Optional[BaseException]:
    # every waiter may have been cancelled; retrieve the error so it is not reported as lost
    if task.cancelled():
        return None
    return task.exception()
