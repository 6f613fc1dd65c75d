import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """Simple in-memory TTL cache with LRU eviction"""

    def __init__(self, default_ttl: int = 30, max_size: int = 1000):
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if time.monotonic() > entry.expires_at:
                del self._cache[key]
                return None
            self._cache.move_to_end(key)
            return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        async with self._lock:
            self._cache[key] = CacheEntry(value=value, expires_at=time.monotonic() + ttl)
            self._cache.move_to_end(key)
            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()

    def size(self) -> int:
        return len(self._cache)


class ResponseCache:
    """TTL cache for upstream JSON that also collapses identical in-flight requests.

    ``None`` results are never cached so a transient failure is retried by the
    next caller.
    """

    def __init__(self, default_ttl: int = 30, max_size: int = 1000):
        self._store = TTLCache(default_ttl=default_ttl, max_size=max_size)
        self._inflight: Dict[str, "asyncio.Future[Any]"] = {}

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        cached = await self._store.get(key)
        if cached is not None:
            return cached

        pending = self._inflight.get(key)
        if pending is not None:
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                # Only swallow the leader's cancellation, never our own
                if not pending.cancelled():
                    raise
            return await fetch()

        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await fetch()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Followers re-raise it; mark retrieved so the loop doesn't warn when there are none
            future.exception()
            raise
        else:
            future.set_result(value)
            if value is not None:
                await self._store.set(key, value)
            return value
        finally:
            self._inflight.pop(key, None)

    async def clear(self) -> None:
        await self._store.clear()

    def size(self) -> int:
        return self._store.size()
