import asyncio

import pytest

from geoblock.cache import LookupCache
from geoblock.errors import LookupTimeoutError
from tests.common import CA, CH, FakeLookupClient


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_get_returns_none_for_unknown_ip() -> None:
    cache = LookupCache(ttl_seconds=60)

    assert cache.get(CH) is None


def test_put_then_get() -> None:
    cache = LookupCache(ttl_seconds=60)
    cache.put(CH, "CH")

    assert cache.get(CH) == "CH"
    assert len(cache) == 1


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = LookupCache(ttl_seconds=60, clock=clock)
    cache.put(CH, "CH")

    clock.now += 59
    assert cache.get(CH) == "CH"

    clock.now += 1
    assert cache.get(CH) is None
    assert len(cache) == 0


def test_put_with_explicit_ttl() -> None:
    clock = FakeClock()
    cache = LookupCache(ttl_seconds=60, clock=clock)
    cache.put(CH, "CH", ttl=5)

    clock.now += 5
    assert cache.get(CH) is None


def test_put_replaces_entry() -> None:
    cache = LookupCache(ttl_seconds=60)
    cache.put(CH, "CH")
    cache.put(CH, "LI")

    assert cache.get(CH) == "LI"
    assert len(cache) == 1


def test_least_recently_used_entry_is_evicted() -> None:
    cache = LookupCache(ttl_seconds=60, max_size=2)
    cache.put("1.1.1.1", "AU")
    cache.put("8.8.8.8", "US")
    # Touch the oldest entry so the other one becomes least recently used.
    assert cache.get("1.1.1.1") == "AU"

    cache.put(CH, "CH")

    assert len(cache) == 2
    assert cache.get("8.8.8.8") is None
    assert cache.get("1.1.1.1") == "AU"
    assert cache.get(CH) == "CH"


def test_clear() -> None:
    cache = LookupCache(ttl_seconds=60)
    cache.put(CH, "CH")
    cache.clear()

    assert len(cache) == 0


@pytest.mark.asyncio
async def test_get_or_resolve_caches_result() -> None:
    cache = LookupCache(ttl_seconds=60)
    lookup = FakeLookupClient()

    assert await cache.get_or_resolve(CH, lookup.resolve_country) == "CH"
    assert await cache.get_or_resolve(CH, lookup.resolve_country) == "CH"

    assert lookup.calls == [CH]


@pytest.mark.asyncio
async def test_get_or_resolve_refreshes_expired_entry() -> None:
    clock = FakeClock()
    cache = LookupCache(ttl_seconds=60, clock=clock)
    lookup = FakeLookupClient()

    await cache.get_or_resolve(CH, lookup.resolve_country)
    clock.now += 61
    await cache.get_or_resolve(CH, lookup.resolve_country)

    assert lookup.calls == [CH, CH]


@pytest.mark.asyncio
async def test_concurrent_lookups_are_coalesced() -> None:
    cache = LookupCache(ttl_seconds=60)
    lookup = FakeLookupClient(delay=0.05)

    results = await asyncio.gather(*(cache.get_or_resolve(CA, lookup.resolve_country) for _ in range(5)))

    assert results == ["CA"] * 5
    assert lookup.calls == [CA]


@pytest.mark.asyncio
async def test_failures_are_not_cached() -> None:
    cache = LookupCache(ttl_seconds=60)
    lookup = FakeLookupClient(error=LookupTimeoutError("slow"))

    for _ in range(2):
        with pytest.raises(LookupTimeoutError):
            await cache.get_or_resolve(CH, lookup.resolve_country)

    assert lookup.calls == [CH, CH]
    assert cache.get(CH) is None


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_lookup() -> None:
    cache = LookupCache(ttl_seconds=60)
    lookup = FakeLookupClient(delay=0.05)

    first = asyncio.ensure_future(cache.get_or_resolve(CH, lookup.resolve_country))
    second = asyncio.ensure_future(cache.get_or_resolve(CH, lookup.resolve_country))
    await asyncio.sleep(0)
    first.cancel()

    assert await second == "CH"
    assert first.cancelled()
    assert lookup.calls == [CH]
