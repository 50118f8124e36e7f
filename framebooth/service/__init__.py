"""Service-layer business logic."""

from .compose import ComposeResult, ComposeService, RenderedComposite
from .retention import (
    RetentionManager,
    RetentionPassResult,
    RetentionReport,
    RetentionStats,
    format_bytes,
    format_duration,
)

__all__ = [
    "ComposeResult",
    "ComposeService",
    "RenderedComposite",
    "RetentionManager",
    "RetentionPassResult",
    "RetentionReport",
    "RetentionStats",
    "format_bytes",
    "format_duration",
]
