"""Runtime configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import os


@dataclass(frozen=True)
class AppSettings:
    """Environment-backed settings for the compose service and retention worker."""

    artifacts_dir: str
    frames_dir: str
    image_quality: int
    output_format: str
    alpha_threshold: int
    min_coverage_percent: float
    min_size_ratio: float
    max_file_age_seconds: int
    max_total_bytes: int
    retention_interval_seconds: int
    compose_workers: int

    @property
    def max_file_age(self) -> timedelta:
        return timedelta(seconds=self.max_file_age_seconds)


DEFAULT_ARTIFACTS_DIR = "uploads"
DEFAULT_FRAMES_DIR = os.path.join("static", "custom-frames")
DEFAULT_IMAGE_QUALITY = 95
DEFAULT_OUTPUT_FORMAT = "JPEG"
DEFAULT_ALPHA_THRESHOLD = 25
DEFAULT_MIN_COVERAGE_PERCENT = 5.0
DEFAULT_MIN_SIZE_RATIO = 0.2
DEFAULT_MAX_FILE_AGE_SECONDS = 24 * 60 * 60
DEFAULT_MAX_TOTAL_BYTES = 100 * 1024 * 1024
DEFAULT_RETENTION_INTERVAL_SECONDS = 60 * 60
DEFAULT_COMPOSE_WORKERS = 2


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer for {name}: {value}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid float for {name}: {value}") from exc


def default_settings(**overrides) -> AppSettings:
    """Build settings from built-in defaults, ignoring the environment."""
    values = {
        "artifacts_dir": DEFAULT_ARTIFACTS_DIR,
        "frames_dir": DEFAULT_FRAMES_DIR,
        "image_quality": DEFAULT_IMAGE_QUALITY,
        "output_format": DEFAULT_OUTPUT_FORMAT,
        "alpha_threshold": DEFAULT_ALPHA_THRESHOLD,
        "min_coverage_percent": DEFAULT_MIN_COVERAGE_PERCENT,
        "min_size_ratio": DEFAULT_MIN_SIZE_RATIO,
        "max_file_age_seconds": DEFAULT_MAX_FILE_AGE_SECONDS,
        "max_total_bytes": DEFAULT_MAX_TOTAL_BYTES,
        "retention_interval_seconds": DEFAULT_RETENTION_INTERVAL_SECONDS,
        "compose_workers": DEFAULT_COMPOSE_WORKERS,
    }
    values.update(overrides)
    return AppSettings(**values)


def load_settings() -> AppSettings:
    """Load all app settings from the environment."""
    image_quality = _env_int("IMAGE_QUALITY", DEFAULT_IMAGE_QUALITY)
    if not 1 <= image_quality <= 100:
        raise RuntimeError(f"IMAGE_QUALITY must be between 1 and 100: {image_quality}")

    return AppSettings(
        artifacts_dir=os.getenv("ARTIFACTS_DIR", DEFAULT_ARTIFACTS_DIR),
        frames_dir=os.getenv("FRAMES_DIR", DEFAULT_FRAMES_DIR),
        image_quality=image_quality,
        output_format=os.getenv("OUTPUT_FORMAT", DEFAULT_OUTPUT_FORMAT).upper(),
        alpha_threshold=_env_int("PLACEMENT_ALPHA_THRESHOLD", DEFAULT_ALPHA_THRESHOLD),
        min_coverage_percent=_env_float(
            "PLACEMENT_MIN_COVERAGE_PERCENT", DEFAULT_MIN_COVERAGE_PERCENT
        ),
        min_size_ratio=_env_float("PLACEMENT_MIN_SIZE_RATIO", DEFAULT_MIN_SIZE_RATIO),
        max_file_age_seconds=_env_int("MAX_FILE_AGE_SECONDS", DEFAULT_MAX_FILE_AGE_SECONDS),
        max_total_bytes=_env_int("MAX_UPLOADS_SIZE", DEFAULT_MAX_TOTAL_BYTES),
        retention_interval_seconds=_env_int(
            "CLEANUP_INTERVAL_SECONDS", DEFAULT_RETENTION_INTERVAL_SECONDS
        ),
        compose_workers=_env_int("COMPOSE_WORKERS", DEFAULT_COMPOSE_WORKERS),
    )
