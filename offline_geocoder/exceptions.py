"""Exception hierarchy for the offline geocoder."""


class GeocoderError(Exception):
    """Base class for all geocoder errors."""


class GeocoderNotInitializedError(GeocoderError):
    """Raised when a lookup is attempted before the resolver is ready."""

    def __init__(self, message: str = "Geocoder not initialized. Call init() first."):
        super().__init__(message)


class InvalidInputError(GeocoderError):
    """Raised for malformed or out-of-range input."""


class CacheStoreError(GeocoderError):
    """Raised by cache store backends when the store cannot be reached or written."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class ResolverError(GeocoderError):
    """Raised when the place resolver itself fails (as opposed to finding nothing)."""


class ResolverInitError(ResolverError):
    """Raised when the place resolver cannot load its data."""
