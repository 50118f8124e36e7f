"""Detection of the transparent cut-out a photo is placed into."""

from __future__ import annotations

from dataclasses import dataclass
import math

from framebooth.config import (
    DEFAULT_ALPHA_THRESHOLD,
    DEFAULT_MIN_COVERAGE_PERCENT,
    DEFAULT_MIN_SIZE_RATIO,
    AppSettings,
)

from .exceptions import InvalidInput
from .raster import Raster


@dataclass(frozen=True, slots=True)
class Rectangle:
    """Placement rectangle in frame pixel coordinates."""

    top: int
    left: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def fits_within(self, width: int, height: int) -> bool:
        return (
            self.top >= 0
            and self.left >= 0
            and self.width > 0
            and self.height > 0
            and self.right <= width
            and self.bottom <= height
        )

    def as_dict(self) -> dict[str, int]:
        return {"top": self.top, "left": self.left, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class PlacementDiagnostics:
    """Pixel statistics gathered while scanning a frame."""

    total_pixels: int
    placement_pixels: int
    coverage_percent: float
    bounding_box: Rectangle | None
    used_fallback: bool


@dataclass(frozen=True, slots=True)
class PlacementResult:
    rectangle: Rectangle
    diagnostics: PlacementDiagnostics


class PlacementDetector:
    """Find the low-alpha region of a frame and turn it into a placement rectangle.

    Pixels whose alpha is below ``alpha_threshold`` count as placement pixels.
    When they cover less than ``min_coverage_percent`` of the frame (or the
    frame has no alpha channel) the whole frame is used. Otherwise the bounding
    box of those pixels is widened to at least ``min_size_ratio`` of each frame
    dimension and kept inside the frame edges.

    Near the right or bottom edge the widened box is not shrunk back to
    ``frame - min`` as a plain clamp would do; its origin moves inward
    instead, so the rectangle keeps the minimum size. A cut-out whose
    widened box already fits keeps ``(min_x, min_y)`` as its origin.
    """

    def __init__(
        self,
        alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD,
        min_coverage_percent: float = DEFAULT_MIN_COVERAGE_PERCENT,
        min_size_ratio: float = DEFAULT_MIN_SIZE_RATIO,
    ) -> None:
        self.alpha_threshold = alpha_threshold
        self.min_coverage_percent = min_coverage_percent
        self.min_size_ratio = min_size_ratio

    @classmethod
    def from_settings(cls, settings: AppSettings) -> PlacementDetector:
        return cls(
            alpha_threshold=settings.alpha_threshold,
            min_coverage_percent=settings.min_coverage_percent,
            min_size_ratio=settings.min_size_ratio,
        )

    def detect(self, frame: Raster) -> PlacementResult:
        width, height = frame.width, frame.height
        total_pixels = width * height
        if total_pixels == 0:
            raise InvalidInput(f"Frame has no pixels: {width}x{height}")

        if not frame.has_alpha:
            return self._fallback(frame, total_pixels, 0, None)

        alphas = frame.samples[frame.channels - 1 :: frame.channels]
        threshold = self.alpha_threshold
        min_x, min_y, max_x, max_y = width, height, -1, -1
        placement_pixels = 0

        for index, alpha in enumerate(alphas):
            if alpha >= threshold:
                continue
            placement_pixels += 1
            y, x = divmod(index, width)
            if x < min_x:
                min_x = x
            if x > max_x:
                max_x = x
            if y < min_y:
                min_y = y
            max_y = y

        if placement_pixels == 0:
            return self._fallback(frame, total_pixels, 0, None)

        box = Rectangle(top=min_y, left=min_x, width=max_x - min_x + 1, height=max_y - min_y + 1)
        coverage = placement_pixels * 100 / total_pixels
        if coverage < self.min_coverage_percent:
            return self._fallback(frame, total_pixels, placement_pixels, box)

        placement_width = min(max(box.width, math.floor(width * self.min_size_ratio)), width)
        placement_height = min(max(box.height, math.floor(height * self.min_size_ratio)), height)
        # a widened box that would run past the frame edge is shifted back inside
        rectangle = Rectangle(
            top=min(min_y, height - placement_height),
            left=min(min_x, width - placement_width),
            width=placement_width,
            height=placement_height,
        )
        diagnostics = PlacementDiagnostics(
            total_pixels=total_pixels,
            placement_pixels=placement_pixels,
            coverage_percent=coverage,
            bounding_box=box,
            used_fallback=False,
        )
        return PlacementResult(rectangle=rectangle, diagnostics=diagnostics)

    @staticmethod
    def _fallback(
        frame: Raster,
        total_pixels: int,
        placement_pixels: int,
        box: Rectangle | None,
    ) -> PlacementResult:
        diagnostics = PlacementDiagnostics(
            total_pixels=total_pixels,
            placement_pixels=placement_pixels,
            coverage_percent=placement_pixels * 100 / total_pixels,
            bounding_box=box,
            used_fallback=True,
        )
        rectangle = Rectangle(top=0, left=0, width=frame.width, height=frame.height)
        return PlacementResult(rectangle=rectangle, diagnostics=diagnostics)


def detect_placement(frame: Raster, detector: PlacementDetector | None = None) -> Rectangle:
    """Return the rectangle a photo should be composited into."""
    return (detector or PlacementDetector()).detect(frame).rectangle
