from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Protocol

from geo_engine.exceptions import ResolverTimeoutError
from geo_engine.models import GeoPoint

logger = logging.getLogger(__name__)


class LocationResolver(Protocol):
    def resolve(self, address: str) -> GeoPoint | None: ...


def close_resolver(resolver: LocationResolver) -> None:
    close = getattr(resolver, "close", None)
    if callable(close):
        close()


class StaticLocationResolver(LocationResolver):
    def __init__(self, locations: Mapping[str, GeoPoint] | None = None) -> None:
        self._locations = dict(locations or {})

    def resolve(self, address: str) -> GeoPoint | None:
        return self._locations.get(address)


class CachingLocationResolver(LocationResolver):
    """Remembers lookups, unknown results included, for ``ttl_seconds``.

    Failures raised by the inner resolver are never cached.
    """

    def __init__(
        self,
        inner: LocationResolver,
        ttl_seconds: float = 300,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self._inner = inner
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._items: OrderedDict[str, tuple[float, GeoPoint | None]] = OrderedDict()
        self._lock = threading.Lock()

    def resolve(self, address: str) -> GeoPoint | None:
        now = self._clock()
        with self._lock:
            item = self._items.get(address)
            if item is not None:
                expires_at, coordinate = item
                if expires_at > now:
                    self._items.move_to_end(address)
                    return coordinate
                self._items.pop(address, None)

        coordinate = self._inner.resolve(address)

        with self._lock:
            self._items[address] = (now + self._ttl_seconds, coordinate)
            self._items.move_to_end(address)
            while len(self._items) > self._max_entries:
                self._items.popitem(last=False)
        return coordinate

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def close(self) -> None:
        close_resolver(self._inner)


class TimeoutLocationResolver(LocationResolver):
    """Bounds a blocking resolver with a per-lookup time budget."""

    def __init__(
        self,
        inner: LocationResolver,
        timeout_seconds: float,
        max_workers: int = 8,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._inner = inner
        self._timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="geo-resolver")

    def resolve(self, address: str) -> GeoPoint | None:
        future = self._executor.submit(self._inner.resolve, address)
        try:
            return future.result(timeout=self._timeout_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            logger.warning(
                "geo_resolver_timeout",
                extra={"component": "geo_engine", "timeout_seconds": self._timeout_seconds},
            )
            raise ResolverTimeoutError(f"lookup exceeded {self._timeout_seconds}s") from exc

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        close_resolver(self._inner)
