import asyncio
import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable

from geoblock.models.common import LookupResult


class LookupCache:
    """Bounded in-memory IP -> country cache with per-entry expiry.

    Entries are immutable `LookupResult` values stored with their expiry time and
    replaced whole on refresh. When more than `max_size` addresses are cached the
    least recently used one is evicted. Only successful lookups are cached.

    `get_or_resolve` coalesces concurrent lookups of one address: the first caller
    starts the resolution and later callers await the same task.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_size: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, tuple[LookupResult, float]] = OrderedDict()
        self._lock = threading.Lock()
        self._pending: dict[str, asyncio.Task[str]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, ip: str) -> str | None:
        """Return the cached country for `ip`, or None when absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(ip)
            if entry is None:
                return None
            result, expires_at = entry
            if expires_at <= now:
                del self._entries[ip]
                return None
            self._entries.move_to_end(ip)
            return result.country

    def put(self, ip: str, country: str, ttl: float | None = None) -> None:
        now = self._clock()
        result = LookupResult(ip=ip, country=country, fetched_at=now)
        expires_at = now + (self._ttl_seconds if ttl is None else ttl)
        with self._lock:
            self._entries[ip] = (result, expires_at)
            self._entries.move_to_end(ip)
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def get_or_resolve(self, ip: str, resolve: Callable[[str], Awaitable[str]]) -> str:
        """Return the cached country for `ip`, resolving and caching it on a miss.

        Exceptions raised by `resolve` reach every waiter and nothing is cached.
        Cancelling one waiter leaves the shared resolution running for the others.
        """
        country = self.get(ip)
        if country is not None:
            return country

        task = self._pending.get(ip)
        if task is None:
            task = asyncio.ensure_future(self._resolve_and_store(ip, resolve))
            self._pending[ip] = task
            task.add_done_callback(lambda done: self._forget(ip, done))

        return await asyncio.shield(task)

    async def _resolve_and_store(self, ip: str, resolve: Callable[[str], Awaitable[str]]) -> str:
        country = await resolve(ip)
        self.put(ip, country)
        return country

    def _forget(self, ip: str, task: "asyncio.Task[str]") -> None:
        if self._pending.get(ip) is task:
            del self._pending[ip]
        # Mark the exception as retrieved when every waiter went away.
        if not task.cancelled():
            task.exception()
