class GeoEngineError(Exception):
    """Base geo engine exception."""


class InvalidConfigurationError(GeoEngineError, ValueError):
    """Raised when a geofence cannot be built from the supplied values."""


class LocationLookupError(GeoEngineError):
    """Raised when a location resolver could not complete a lookup."""


class ResolverTimeoutError(LocationLookupError):
    """Raised when a location lookup exceeded its time budget."""
