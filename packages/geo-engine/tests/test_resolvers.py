import threading

import pytest

from geo_engine.exceptions import ResolverTimeoutError
from geo_engine.models import GeoPoint
from geo_engine.resolvers import (
    CachingLocationResolver,
    StaticLocationResolver,
    TimeoutLocationResolver,
    close_resolver,
)

LONDON = GeoPoint(lat=51.5074, lng=-0.1278)


class CountingResolver:
    def __init__(self, locations: dict[str, GeoPoint] | None = None) -> None:
        self._locations = locations or {}
        self.calls = 0
        self.closed = False

    def resolve(self, address: str) -> GeoPoint | None:
        self.calls += 1
        return self._locations.get(address)

    def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_static_resolver_returns_known_and_unknown() -> None:
    resolver = StaticLocationResolver({"1.2.3.4": LONDON})
    assert resolver.resolve("1.2.3.4") == LONDON
    assert resolver.resolve("5.6.7.8") is None


def test_caching_resolver_reuses_results_within_ttl() -> None:
    inner = CountingResolver({"1.2.3.4": LONDON})
    clock = FakeClock()
    resolver = CachingLocationResolver(inner, ttl_seconds=60, clock=clock)

    assert resolver.resolve("1.2.3.4") == LONDON
    assert resolver.resolve("1.2.3.4") == LONDON
    assert resolver.resolve("9.9.9.9") is None
    assert resolver.resolve("9.9.9.9") is None
    assert inner.calls == 2

    clock.now += 61
    assert resolver.resolve("1.2.3.4") == LONDON
    assert inner.calls == 3


def test_caching_resolver_evicts_least_recently_used() -> None:
    inner = CountingResolver()
    resolver = CachingLocationResolver(inner, ttl_seconds=60, max_entries=2, clock=FakeClock())

    resolver.resolve("a")
    resolver.resolve("b")
    resolver.resolve("a")
    resolver.resolve("c")
    assert len(resolver) == 2

    resolver.resolve("a")
    assert inner.calls == 3
    resolver.resolve("b")
    assert inner.calls == 4


def test_caching_resolver_does_not_cache_failures() -> None:
    class FlakyResolver:
        def __init__(self) -> None:
            self.calls = 0

        def resolve(self, address: str) -> GeoPoint | None:
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("temporary")
            return LONDON

    inner = FlakyResolver()
    resolver = CachingLocationResolver(inner, ttl_seconds=60, clock=FakeClock())

    with pytest.raises(RuntimeError):
        resolver.resolve("1.2.3.4")
    assert resolver.resolve("1.2.3.4") == LONDON


def test_caching_resolver_rejects_non_positive_ttl() -> None:
    with pytest.raises(ValueError):
        CachingLocationResolver(StaticLocationResolver(), ttl_seconds=0)


def test_timeout_resolver_passes_through_fast_lookups() -> None:
    resolver = TimeoutLocationResolver(StaticLocationResolver({"1.2.3.4": LONDON}), timeout_seconds=1.0)
    try:
        assert resolver.resolve("1.2.3.4") == LONDON
        assert resolver.resolve("5.6.7.8") is None
    finally:
        resolver.close()


def test_timeout_resolver_raises_on_expiry() -> None:
    release = threading.Event()

    class BlockingResolver:
        def resolve(self, address: str) -> GeoPoint | None:
            release.wait(5)
            return LONDON

    resolver = TimeoutLocationResolver(BlockingResolver(), timeout_seconds=0.05)
    try:
        with pytest.raises(ResolverTimeoutError):
            resolver.resolve("1.2.3.4")
    finally:
        release.set()
        resolver.close()


def test_close_propagates_to_inner_resolver() -> None:
    inner = CountingResolver()
    close_resolver(CachingLocationResolver(TimeoutLocationResolver(inner, timeout_seconds=1.0)))
    assert inner.closed is True
