"""Exceptions raised by raster source providers and the checker."""


class RasterCheckError(Exception):
    """Base exception for raster checking errors."""


class OpenError(RasterCheckError):
    """A raster source cannot be opened or is reported invalid."""

    def __init__(self, source_type: str, location: str, reason: str = "") -> None:
        self.source_type = source_type
        self.location = location
        self.reason = reason
        message = f"Cannot load provider {source_type} with URI: {location}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
