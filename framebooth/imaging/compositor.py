"""Cover-fit resizing and frame compositing."""

from __future__ import annotations

from PIL import Image, ImageOps

from .exceptions import InvalidInput
from .placement import Rectangle
from .raster import Raster, flatten_alpha


RESAMPLING = Image.Resampling.LANCZOS
CENTER = (0.5, 0.5)


def fit_photo(photo: Raster, width: int, height: int) -> Raster:
    """Scale the photo to cover ``width x height`` and crop the overflow around its centre."""
    if photo.width <= 0 or photo.height <= 0:
        raise InvalidInput(f"Photo has a zero-length dimension: {photo.width}x{photo.height}")
    if width <= 0 or height <= 0:
        raise InvalidInput(f"Target size must be positive: {width}x{height}")

    fitted = ImageOps.fit(photo.to_image(), (width, height), method=RESAMPLING, centering=CENTER)
    return Raster.from_image(fitted)


def composite_photo(photo: Raster, frame: Raster, rectangle: Rectangle) -> Raster:
    """Place the cover-fitted photo into ``rectangle`` on a copy of the frame.

    The result keeps the frame's size and channel count. Pixels outside the
    rectangle are copied from the frame untouched. The photo is made opaque
    (flattened onto white) first, so the rectangle is always fully covered.
    """
    if not rectangle.fits_within(frame.width, frame.height):
        raise InvalidInput(
            f"Rectangle {rectangle.as_dict()} does not fit a {frame.width}x{frame.height} frame"
        )

    fitted = fit_photo(photo, rectangle.width, rectangle.height)
    canvas = frame.to_image()
    patch = fitted.to_image()
    if fitted.has_alpha:
        # the photo must fill the cut-out, so its own transparency is dropped
        patch = flatten_alpha(patch)
    if patch.mode != canvas.mode:
        patch = patch.convert(canvas.mode)
    canvas.paste(patch, (rectangle.left, rectangle.top))
    return Raster.from_image(canvas)
