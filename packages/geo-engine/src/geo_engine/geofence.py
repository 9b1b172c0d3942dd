from __future__ import annotations

import math
from dataclasses import dataclass

from geo_engine.distance import haversine_distance_km
from geo_engine.exceptions import InvalidConfigurationError
from geo_engine.models import GeoPoint


@dataclass(frozen=True)
class GeoFenceConfig:
    center: GeoPoint
    radius_km: float

    def __post_init__(self) -> None:
        if not isinstance(self.center, GeoPoint):
            raise InvalidConfigurationError("center must be a GeoPoint")
        if not math.isfinite(self.radius_km) or self.radius_km <= 0:
            raise InvalidConfigurationError("radius_km must be a finite number > 0")


def build_geofence_config(center_lat: float, center_lng: float, radius_km: float) -> GeoFenceConfig:
    try:
        center = GeoPoint(lat=float(center_lat), lng=float(center_lng))
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"invalid geofence center: {exc}") from exc
    try:
        radius = float(radius_km)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError("radius_km must be a number") from exc
    return GeoFenceConfig(center=center, radius_km=radius)


def is_distance_within_radius(distance_km: float, radius_km: float) -> bool:
    if radius_km < 0:
        raise ValueError("radius_km must be >= 0")
    return distance_km <= radius_km


def is_point_inside_radius(center: GeoPoint, point: GeoPoint, radius_km: float) -> bool:
    return is_distance_within_radius(haversine_distance_km(center, point), radius_km)
