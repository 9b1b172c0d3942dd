"""Request-time admission decisions based on a client's approximate location.

The gateway never raises for per-request input: empty or malformed addresses,
unknown locations and resolver faults all collapse into an
``UNRESOLVABLE_LOCATION`` denial.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from geo_engine.distance import haversine_distance_km
from geo_engine.geofence import GeoFenceConfig, is_distance_within_radius
from geo_engine.models import ClientLocation, GeoPoint
from geo_engine.resolvers import LocationResolver

logger = logging.getLogger(__name__)


class ReasonCode(str, Enum):
    UNRESOLVABLE_LOCATION = "UNRESOLVABLE_LOCATION"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    WITHIN_RANGE = "WITHIN_RANGE"


@dataclass(frozen=True)
class AdmissionDecision:
    reason_code: ReasonCode
    distance_km: float | None = None

    def __post_init__(self) -> None:
        if self.reason_code is ReasonCode.UNRESOLVABLE_LOCATION:
            if self.distance_km is not None:
                raise ValueError("unresolvable decisions carry no distance")
        elif self.distance_km is None or self.distance_km < 0:
            raise ValueError("resolved decisions require distance_km >= 0")

    @property
    def allowed(self) -> bool:
        return self.reason_code is ReasonCode.WITHIN_RANGE

    @classmethod
    def unresolvable(cls) -> AdmissionDecision:
        return cls(reason_code=ReasonCode.UNRESOLVABLE_LOCATION)

    @classmethod
    def from_distance(cls, distance_km: float, inside: bool) -> AdmissionDecision:
        if inside:
            return cls(reason_code=ReasonCode.WITHIN_RANGE, distance_km=distance_km)
        return cls(reason_code=ReasonCode.OUT_OF_RANGE, distance_km=distance_km)


def extract_candidate_address(raw_address: str | None) -> str:
    """Return the originating client from a forwarding chain.

    ``"1.2.3.4, 5.6.7.8"`` yields ``"1.2.3.4"``; blank segments are skipped and
    empty input yields ``""``.
    """
    if not raw_address:
        return ""
    for segment in str(raw_address).split(","):
        candidate = segment.strip()
        if candidate:
            return candidate
    return ""


class AdmissionGateway:
    def __init__(self, config: GeoFenceConfig, resolver: LocationResolver) -> None:
        self._config = config
        self._resolver = resolver

    @property
    def config(self) -> GeoFenceConfig:
        return self._config

    @property
    def resolver(self) -> LocationResolver:
        return self._resolver

    def locate(self, raw_address: str | None) -> ClientLocation:
        address = extract_candidate_address(raw_address)
        if not address:
            return ClientLocation(address="")
        return ClientLocation(address=address, coordinate=self._resolve(address))

    def evaluate(self, raw_address: str | None) -> AdmissionDecision:
        location = self.locate(raw_address)
        if location.coordinate is None:
            decision = AdmissionDecision.unresolvable()
        else:
            distance_km = haversine_distance_km(location.coordinate, self._config.center)
            inside = is_distance_within_radius(distance_km, self._config.radius_km)
            decision = AdmissionDecision.from_distance(distance_km, inside)
        logger.debug(
            "geo_admission_evaluated",
            extra={
                "component": "geo_engine",
                "address": location.address,
                "reason_code": decision.reason_code.value,
                "distance_km": decision.distance_km,
            },
        )
        return decision

    def _resolve(self, address: str) -> GeoPoint | None:
        try:
            coordinate = self._resolver.resolve(address)
        except Exception as exc:
            logger.warning(
                "geo_resolver_failed",
                extra={"component": "geo_engine", "address": address, "error": type(exc).__name__},
            )
            return None
        if coordinate is not None and not isinstance(coordinate, GeoPoint):
            logger.warning(
                "geo_resolver_invalid_result",
                extra={"component": "geo_engine", "address": address},
            )
            return None
        return coordinate


def evaluate_admission(
    raw_address: str | None,
    config: GeoFenceConfig,
    resolver: LocationResolver,
) -> AdmissionDecision:
    return AdmissionGateway(config, resolver).evaluate(raw_address)
