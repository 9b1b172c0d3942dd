from __future__ import annotations

from pydantic import Field, ValidationError

from devkit.config import ServiceSettings, load_settings, split_csv
from geo_engine.exceptions import InvalidConfigurationError
from geo_engine.geofence import GeoFenceConfig, build_geofence_config

DEFAULT_DENIED_MESSAGE = "This site is not available in your location."


class StorefrontSettings(ServiceSettings):
    SERVICE_NAME: str = "storefront"

    GEOFENCE_CENTER_LAT: float = Field(ge=-90, le=90)
    GEOFENCE_CENTER_LNG: float = Field(ge=-180, le=180)
    GEOFENCE_RADIUS_KM: float = Field(gt=0, allow_inf_nan=False)
    GEOFENCE_DENIED_MESSAGE: str = DEFAULT_DENIED_MESSAGE
    GEOFENCE_EXEMPT_PATHS: str = "/healthz,/readyz"
    TRUST_PROXY: bool = True

    GEOIP_DATABASE_PATH: str | None = None
    GEO_LOOKUP_BASE_URL: str | None = None
    GEO_LOOKUP_TIMEOUT_SECONDS: float = Field(default=2.0, gt=0)
    GEO_LOOKUP_CACHE_TTL_SECONDS: int = Field(default=300, ge=0)

    METRICS_BUFFER_SIZE: int = Field(default=1000, gt=0)

    STATIC_ROOT: str | None = None
    CORS_ALLOW_ORIGINS: str = ""

    @property
    def exempt_paths(self) -> tuple[str, ...]:
        return split_csv(self.GEOFENCE_EXEMPT_PATHS)

    @property
    def cors_allow_origins(self) -> tuple[str, ...]:
        return split_csv(self.CORS_ALLOW_ORIGINS)

    def geofence_config(self) -> GeoFenceConfig:
        return build_geofence_config(
            self.GEOFENCE_CENTER_LAT,
            self.GEOFENCE_CENTER_LNG,
            self.GEOFENCE_RADIUS_KM,
        )


def load_storefront_settings() -> StorefrontSettings:
    try:
        return load_settings("storefront", StorefrontSettings)
    except ValidationError as exc:
        raise InvalidConfigurationError(f"invalid storefront configuration: {exc}") from exc
