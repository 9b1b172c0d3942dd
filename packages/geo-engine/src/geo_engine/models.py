from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError("coordinates must be finite")
        if self.lat < -90 or self.lat > 90:
            raise ValueError("lat must be between -90 and 90")
        if self.lng < -180 or self.lng > 180:
            raise ValueError("lng must be between -180 and 180")


@dataclass(frozen=True)
class ClientLocation:
    address: str
    coordinate: GeoPoint | None = None

    @property
    def resolved(self) -> bool:
        return self.coordinate is not None
