"""
Errors raised while resolving a reverse geocoding request.

The API layer maps each of them to an HTTP status code; none of them is
retried inside the service.
"""
from typing import Optional


class GeocodingError(Exception):
    """Base class for all resolution failures."""


class InvalidInputError(GeocodingError, ValueError):
    """Malformed geohash, coordinate or language. Never retryable."""


class RateLimitedError(GeocodingError):
    """The request could not get an upstream slot within its wait budget."""


class UpstreamError(GeocodingError):
    """Nominatim answered with an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class StorageError(GeocodingError):
    """Reading from or writing to the address cache failed."""


class ConfigurationError(RuntimeError):
    """A required environment variable is missing."""
