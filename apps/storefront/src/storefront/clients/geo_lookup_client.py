from __future__ import annotations

from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import httpx

from geo_engine.exceptions import LocationLookupError
from geo_engine.models import GeoPoint
from geo_engine.resolvers import LocationResolver


class GeoLookupClient:
    """Client for an ip-api compatible ``/json/{address}`` endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 2.0,
        client_factory: Callable[[], httpx.Client] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    def lookup(self, address: str) -> dict[str, Any]:
        try:
            factory = self._client_factory or (lambda: httpx.Client(timeout=self._timeout_seconds))
            with factory() as client:
                response = client.get(
                    f"{self._base_url}/json/{quote(address, safe='')}",
                    params={"fields": "status,message,lat,lon"},
                )
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise LocationLookupError("geo lookup timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise LocationLookupError(f"geo lookup returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise LocationLookupError("geo lookup request failed") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise LocationLookupError("geo lookup returned invalid json") from exc
        if not isinstance(payload, dict):
            raise LocationLookupError("geo lookup returned unexpected payload")
        return payload


class HttpLocationResolver(LocationResolver):
    def __init__(self, client: GeoLookupClient) -> None:
        self._client = client

    def resolve(self, address: str) -> GeoPoint | None:
        if not address:
            return None
        payload = self._client.lookup(address)
        if payload.get("status") != "success":
            return None
        lat = payload.get("lat")
        lon = payload.get("lon")
        if lat is None or lon is None:
            return None
        try:
            return GeoPoint(lat=float(lat), lng=float(lon))
        except (TypeError, ValueError):
            return None
