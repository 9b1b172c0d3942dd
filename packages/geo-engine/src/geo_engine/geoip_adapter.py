from __future__ import annotations

import ipaddress
import logging
from typing import Any, Protocol

import geoip2.database
from geoip2.errors import AddressNotFoundError

from geo_engine.models import GeoPoint
from geo_engine.resolvers import LocationResolver

logger = logging.getLogger(__name__)


class CityReader(Protocol):
    def city(self, ip_address: str) -> Any: ...

    def close(self) -> None: ...


class GeoIP2LocationResolver(LocationResolver):
    """Resolves addresses against a local MaxMind City database."""

    def __init__(self, reader: CityReader) -> None:
        self._reader = reader

    @classmethod
    def from_database(cls, path: str) -> GeoIP2LocationResolver:
        reader = geoip2.database.Reader(path)
        logger.info("geoip_database_loaded", extra={"component": "geo_engine", "path": path})
        return cls(reader)

    def resolve(self, address: str) -> GeoPoint | None:
        ip = _normalize_public_ip(address)
        if ip is None:
            return None
        try:
            record = self._reader.city(ip)
        except (AddressNotFoundError, ValueError):
            return None
        location = getattr(record, "location", None)
        latitude = getattr(location, "latitude", None)
        longitude = getattr(location, "longitude", None)
        if latitude is None or longitude is None:
            return None
        try:
            return GeoPoint(lat=float(latitude), lng=float(longitude))
        except ValueError:
            return None

    def close(self) -> None:
        self._reader.close()


def _normalize_public_ip(address: str) -> str | None:
    try:
        ip = ipaddress.ip_address(address.strip())
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    if (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    ):
        return None
    return str(ip)
