"""Photo + frame compositing flow."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
import logging

from framebooth.config import (
    DEFAULT_COMPOSE_WORKERS,
    DEFAULT_IMAGE_QUALITY,
    DEFAULT_OUTPUT_FORMAT,
    AppSettings,
)
from framebooth.imaging import PlacementDetector, PlacementResult, composite_photo, decode, encode
from framebooth.storage import ArtifactRecord, ArtifactStore, FrameLibrary


LOGGER = logging.getLogger(__name__)
EXTENSIONS_BY_FORMAT = {"JPEG": "jpg", "JPG": "jpg", "PNG": "png", "WEBP": "webp"}


@dataclass(frozen=True, slots=True)
class RenderedComposite:
    data: bytes
    width: int
    height: int
    placement: PlacementResult


@dataclass(frozen=True, slots=True)
class ComposeResult:
    """Stored composite plus where the photo landed in the frame."""

    artifact: ArtifactRecord
    frame_id: str
    placement: PlacementResult
    width: int
    height: int


class ComposeService:
    """Decode, place, composite, encode and persist one photo per request."""

    def __init__(
        self,
        frames: FrameLibrary,
        store: ArtifactStore,
        image_quality: int = DEFAULT_IMAGE_QUALITY,
        output_format: str = DEFAULT_OUTPUT_FORMAT,
        max_workers: int = DEFAULT_COMPOSE_WORKERS,
    ) -> None:
        self.frames = frames
        self.store = store
        self.image_quality = image_quality
        self.output_format = output_format.upper()
        self.max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    @classmethod
    def from_settings(cls, settings: AppSettings) -> ComposeService:
        detector = PlacementDetector.from_settings(settings)
        return cls(
            frames=FrameLibrary(settings.frames_dir, detector=detector),
            store=ArtifactStore(settings.artifacts_dir),
            image_quality=settings.image_quality,
            output_format=settings.output_format,
            max_workers=settings.compose_workers,
        )

    def render(self, photo_bytes: bytes, frame_id: str, quality: int | None = None) -> RenderedComposite:
        """Build the encoded composite without touching the artifact store."""
        frame = self.frames.load_frame(frame_id)
        photo = decode(photo_bytes)

        placement = self.frames.detector.detect(frame)
        diagnostics = placement.diagnostics
        LOGGER.info(
            "Frame %s: %s/%s placement pixels (%.2f%%), fallback=%s, rectangle=%s",
            frame_id,
            diagnostics.placement_pixels,
            diagnostics.total_pixels,
            diagnostics.coverage_percent,
            diagnostics.used_fallback,
            placement.rectangle.as_dict(),
        )

        composite = composite_photo(photo, frame, placement.rectangle)
        data = encode(
            composite,
            format=self.output_format,
            quality=quality if quality is not None else self.image_quality,
        )
        return RenderedComposite(
            data=data, width=composite.width, height=composite.height, placement=placement
        )

    def compose(self, photo_bytes: bytes, frame_id: str, quality: int | None = None) -> ComposeResult:
        """Render the composite and persist it as a new artifact."""
        rendered = self.render(photo_bytes, frame_id, quality=quality)
        extension = EXTENSIONS_BY_FORMAT.get(self.output_format, self.output_format.lower())
        artifact = self.store.write(self.store.generate_name(extension=extension), rendered.data)
        LOGGER.info("Stored composite %s (%s bytes)", artifact.name, artifact.size)
        return ComposeResult(
            artifact=artifact,
            frame_id=frame_id,
            placement=rendered.placement,
            width=rendered.width,
            height=rendered.height,
        )

    def submit(self, photo_bytes: bytes, frame_id: str, quality: int | None = None) -> Future[ComposeResult]:
        """Run ``compose`` on the worker pool."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="framebooth-compose"
            )
        return self._executor.submit(self.compose, photo_bytes, frame_id, quality)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> ComposeService:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
