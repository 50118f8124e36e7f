"""Composite one photo into a frame and store the result as an artifact."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import json
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from framebooth.config import load_settings
from framebooth.imaging import ImagingError, PlacementDetector
from framebooth.service import ComposeService
from framebooth.storage import ArtifactStore, FrameLibrary, StorageModuleError


def build_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Insert a photo into a frame's transparent area and save the composite."
    )
    parser.add_argument("--photo", required=True, help="Path to the photo to insert.")
    parser.add_argument("--frame-id", required=True, help="Frame id (file stem in the frames dir).")
    parser.add_argument(
        "--frames-dir",
        default=None,
        help="Directory holding <frame-id>.png files (default: FRAMES_DIR setting).",
    )
    parser.add_argument(
        "--artifacts-dir",
        default=None,
        help="Directory to store the composite in (default: ARTIFACTS_DIR setting).",
    )
    parser.add_argument(
        "--quality",
        type=int,
        default=None,
        help="Output quality 1-100 (default: IMAGE_QUALITY setting).",
    )
    return parser


def _build_output(
    *,
    frame_id: str,
    artifact_path: str | None,
    artifact_size: int | None,
    placement: dict[str, int] | None,
    used_fallback: bool | None,
    status: str,
    error: str | None,
) -> dict[str, object]:
    return {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "frame_id": frame_id,
        "artifact_path": artifact_path,
        "artifact_size": artifact_size,
        "placement": placement,
        "used_fallback": used_fallback,
        "status": status,
        "error": error,
    }


def _error_output(frame_id: str, exc: Exception) -> dict[str, object]:
    return _build_output(
        frame_id=frame_id,
        artifact_path=None,
        artifact_size=None,
        placement=None,
        used_fallback=None,
        status="error",
        error=str(exc),
    )


def main(argv: list[str] | None = None) -> int:
    """Run the compose script and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        detector = PlacementDetector.from_settings(settings)
        service = ComposeService(
            frames=FrameLibrary(args.frames_dir or settings.frames_dir, detector=detector),
            store=ArtifactStore(args.artifacts_dir or settings.artifacts_dir),
            image_quality=settings.image_quality,
            output_format=settings.output_format,
        )
        photo_bytes = Path(args.photo).expanduser().read_bytes()
        result = service.compose(photo_bytes, args.frame_id, quality=args.quality)
    except (ImagingError, StorageModuleError, FileNotFoundError) as exc:
        print(json.dumps(_error_output(args.frame_id, exc), ensure_ascii=False))
        return 2
    except Exception as exc:
        print(json.dumps(_error_output(args.frame_id, exc), ensure_ascii=False))
        return 1

    payload = _build_output(
        frame_id=args.frame_id,
        artifact_path=result.artifact.path,
        artifact_size=result.artifact.size,
        placement=result.placement.rectangle.as_dict(),
        used_fallback=result.placement.diagnostics.used_fallback,
        status="ok",
        error=None,
    )
    print(json.dumps(payload, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
