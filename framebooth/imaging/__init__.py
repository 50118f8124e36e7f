"""Raster codec, placement detection and compositing."""

from .compositor import composite_photo, fit_photo
from .exceptions import DecodeError, ImagingError, InvalidInput
from .placement import (
    PlacementDetector,
    PlacementDiagnostics,
    PlacementResult,
    Rectangle,
    detect_placement,
)
from .raster import Raster, decode, encode

__all__ = [
    "DecodeError",
    "ImagingError",
    "InvalidInput",
    "PlacementDetector",
    "PlacementDiagnostics",
    "PlacementResult",
    "Raster",
    "Rectangle",
    "composite_photo",
    "decode",
    "detect_placement",
    "encode",
    "fit_photo",
]
