"""Geo engine core package."""

from geo_engine.admission import (
    AdmissionDecision,
    AdmissionGateway,
    ReasonCode,
    evaluate_admission,
    extract_candidate_address,
)
from geo_engine.distance import haversine_distance_km
from geo_engine.exceptions import (
    GeoEngineError,
    InvalidConfigurationError,
    LocationLookupError,
    ResolverTimeoutError,
)
from geo_engine.geofence import (
    GeoFenceConfig,
    build_geofence_config,
    is_distance_within_radius,
    is_point_inside_radius,
)
from geo_engine.geoip_adapter import GeoIP2LocationResolver
from geo_engine.models import ClientLocation, GeoPoint
from geo_engine.resolvers import (
    CachingLocationResolver,
    LocationResolver,
    StaticLocationResolver,
    TimeoutLocationResolver,
    close_resolver,
)

__all__ = [
    "AdmissionDecision",
    "AdmissionGateway",
    "CachingLocationResolver",
    "ClientLocation",
    "GeoEngineError",
    "GeoFenceConfig",
    "GeoIP2LocationResolver",
    "GeoPoint",
    "InvalidConfigurationError",
    "LocationLookupError",
    "LocationResolver",
    "ReasonCode",
    "ResolverTimeoutError",
    "StaticLocationResolver",
    "TimeoutLocationResolver",
    "build_geofence_config",
    "close_resolver",
    "evaluate_admission",
    "extract_candidate_address",
    "haversine_distance_km",
    "is_distance_within_radius",
    "is_point_inside_radius",
]
