"""Frame asset library backed by a directory of PNG files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final
import re

from framebooth.imaging import PlacementDetector, Raster, Rectangle, decode

from .exceptions import FrameNotFoundError, StorageError


FRAME_EXTENSION: Final[str] = ".png"
FRAME_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


@dataclass(frozen=True, slots=True)
class FrameAsset:
    frame_id: str
    path: str
    size: int


@dataclass(frozen=True, slots=True)
class FrameInfo:
    """Frame metadata including its detected placement rectangle."""

    frame_id: str
    path: str
    size: int
    width: int
    height: int
    has_alpha: bool
    placement: Rectangle


class FrameLibrary:
    """Resolve frame ids to ``<frames_dir>/<frame_id>.png`` and load them."""

    def __init__(self, root: str | Path, detector: PlacementDetector | None = None) -> None:
        self.root = Path(root).expanduser()
        self.detector = detector or PlacementDetector()

    def list_frames(self) -> list[FrameAsset]:
        if not self.root.exists():
            return []
        try:
            entries = sorted(self.root.glob(f"*{FRAME_EXTENSION}"))
        except OSError as exc:
            raise StorageError(f"Cannot list frame directory {self.root}: {exc}") from exc

        frames: list[FrameAsset] = []
        for entry in entries:
            if not FRAME_ID_PATTERN.match(entry.stem) or not entry.is_file():
                continue
            frames.append(FrameAsset(frame_id=entry.stem, path=str(entry), size=entry.stat().st_size))
        return frames

    def frame_exists(self, frame_id: str) -> bool:
        try:
            self.frame_path(frame_id)
        except FrameNotFoundError:
            return False
        return True

    def frame_path(self, frame_id: str) -> Path:
        if not frame_id or not FRAME_ID_PATTERN.match(frame_id):
            raise FrameNotFoundError(f"Invalid frame id: {frame_id!r}")
        path = self.root / f"{frame_id}{FRAME_EXTENSION}"
        if not path.is_file():
            raise FrameNotFoundError(f"Frame {frame_id} not found")
        return path

    def load_frame(self, frame_id: str) -> Raster:
        path = self.frame_path(frame_id)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Cannot read frame: {exc}", name=path.name) from exc
        return decode(data)

    def get_frame_info(self, frame_id: str) -> FrameInfo:
        path = self.frame_path(frame_id)
        frame = self.load_frame(frame_id)
        return FrameInfo(
            frame_id=frame_id,
            path=str(path),
            size=path.stat().st_size,
            width=frame.width,
            height=frame.height,
            has_alpha=frame.has_alpha,
            placement=self.detector.detect(frame).rectangle,
        )
