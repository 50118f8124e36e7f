"""Custom exceptions for raster decoding and compositing."""


class ImagingError(Exception):
    """Base exception for imaging failures."""


class DecodeError(ImagingError):
    """Raised when image bytes cannot be decoded into a raster."""


class InvalidInput(ImagingError):
    """Raised for degenerate photo, frame or rectangle dimensions."""
