"""Error taxonomy shared by the routing, zone, geocoding and cache layers."""


class InvalidRequestError(ValueError):
    """Malformed input, detected before any network call."""


class InvalidCoordinatesError(InvalidRequestError):
    pass


class RouteProviderError(Exception):
    """Upstream route computation failed or returned no route. Fatal for the request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DegradedProviderError(Exception):
    """Isochrone or geocode provider failure. Always absorbed into a fallback."""


class CacheStoreError(Exception):
    """Route cache read/write failure. Logged and ignored."""
