"""Raw raster container and the Pillow-backed codec."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Final

from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError, InvalidInput


MODES_BY_CHANNELS: Final[dict[int, str]] = {3: "RGB", 4: "RGBA"}
FORMAT_ALIASES: Final[dict[str, str]] = {"JPG": "JPEG"}
SUPPORTED_FORMATS: Final[tuple[str, ...]] = ("JPEG", "PNG", "WEBP")
FLATTEN_BACKGROUND: Final[tuple[int, int, int]] = (255, 255, 255)


@dataclass(frozen=True, slots=True)
class Raster:
    """Row-major interleaved 8-bit pixel buffer."""

    width: int
    height: int
    channels: int
    samples: bytes

    def __post_init__(self) -> None:
        if self.channels not in MODES_BY_CHANNELS:
            raise InvalidInput(f"Unsupported channel count: {self.channels}")
        if self.width < 0 or self.height < 0:
            raise InvalidInput(f"Negative raster size: {self.width}x{self.height}")
        expected = self.width * self.height * self.channels
        if len(self.samples) != expected:
            raise InvalidInput(
                f"Sample buffer holds {len(self.samples)} bytes, expected {expected}"
            )

    @property
    def has_alpha(self) -> bool:
        return self.channels == 4

    @property
    def mode(self) -> str:
        return MODES_BY_CHANNELS[self.channels]

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @classmethod
    def from_image(cls, image: Image.Image) -> Raster:
        """Copy a Pillow image into a raster, normalising its mode to RGB/RGBA."""
        image = _normalise_mode(image)
        channels = 4 if image.mode == "RGBA" else 3
        return cls(
            width=image.width,
            height=image.height,
            channels=channels,
            samples=image.tobytes(),
        )

    def to_image(self) -> Image.Image:
        """Return a new Pillow image holding a copy of the samples."""
        return Image.frombytes(self.mode, self.size, self.samples)


def decode(data: bytes) -> Raster:
    """Decode encoded image bytes (PNG, JPEG, WEBP, ...) into a raster."""
    if not data:
        raise DecodeError("Image payload is empty.")

    try:
        with Image.open(BytesIO(data)) as image:
            image.load()
            return Raster.from_image(image)
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Unreadable image: {exc}") from exc
    except (OSError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"Corrupt image data: {exc}") from exc


def encode(raster: Raster, format: str = "JPEG", quality: int = 95) -> bytes:
    """Encode a raster; the only lossy step in the pipeline happens here."""
    if isinstance(quality, bool) or not isinstance(quality, int) or not 1 <= quality <= 100:
        raise InvalidInput(f"Quality must be an integer between 1 and 100: {quality!r}")

    image_format = FORMAT_ALIASES.get(format.upper(), format.upper())
    if image_format not in SUPPORTED_FORMATS:
        raise InvalidInput(f"Unsupported output format: {format}")

    image = raster.to_image()
    save_kwargs: dict[str, object] = {}
    if image_format == "JPEG":
        if raster.has_alpha:
            image = flatten_alpha(image)
        save_kwargs["quality"] = quality
    elif image_format == "WEBP":
        save_kwargs["quality"] = quality

    buff = BytesIO()
    image.save(buff, format=image_format, **save_kwargs)
    return buff.getvalue()


def flatten_alpha(
    image: Image.Image, background: tuple[int, int, int] = FLATTEN_BACKGROUND
) -> Image.Image:
    """Composite an RGBA image onto a solid background."""
    flattened = Image.new("RGB", image.size, background)
    flattened.paste(image, mask=image.getchannel("A"))
    return flattened


def _normalise_mode(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "RGBA"):
        return image
    has_alpha = image.mode in ("LA", "La", "PA", "RGBa") or "transparency" in image.info
    return image.convert("RGBA" if has_alpha else "RGB")
