from __future__ import annotations

import logging

from geo_engine.admission import AdmissionGateway
from geo_engine.geoip_adapter import GeoIP2LocationResolver
from geo_engine.resolvers import (
    CachingLocationResolver,
    LocationResolver,
    StaticLocationResolver,
    TimeoutLocationResolver,
)

from storefront.clients.geo_lookup_client import GeoLookupClient, HttpLocationResolver
from storefront.settings import StorefrontSettings

logger = logging.getLogger(__name__)


def build_location_resolver(settings: StorefrontSettings) -> LocationResolver:
    if settings.GEOIP_DATABASE_PATH:
        resolver: LocationResolver = GeoIP2LocationResolver.from_database(settings.GEOIP_DATABASE_PATH)
    elif settings.GEO_LOOKUP_BASE_URL:
        client = GeoLookupClient(
            base_url=settings.GEO_LOOKUP_BASE_URL,
            timeout_seconds=settings.GEO_LOOKUP_TIMEOUT_SECONDS,
        )
        resolver = HttpLocationResolver(client)
    else:
        logger.warning(
            "geo_resolver_not_configured",
            extra={"component": "storefront", "effect": "all requests outside exempt paths are denied"},
        )
        return StaticLocationResolver()

    resolver = TimeoutLocationResolver(resolver, timeout_seconds=settings.GEO_LOOKUP_TIMEOUT_SECONDS)
    if settings.GEO_LOOKUP_CACHE_TTL_SECONDS > 0:
        resolver = CachingLocationResolver(resolver, ttl_seconds=settings.GEO_LOOKUP_CACHE_TTL_SECONDS)
    return resolver


def build_admission_gateway(
    settings: StorefrontSettings,
    resolver: LocationResolver | None = None,
) -> AdmissionGateway:
    config = settings.geofence_config()
    return AdmissionGateway(config, resolver if resolver is not None else build_location_resolver(settings))
