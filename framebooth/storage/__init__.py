"""Frame assets and artifact persistence."""

from .artifacts import SUPPORTED_EXTENSIONS, ArtifactRecord, ArtifactStore
from .exceptions import (
    FrameNotFoundError,
    PartialRetentionFailure,
    StorageError,
    StorageModuleError,
)
from .frames import FrameAsset, FrameInfo, FrameLibrary

__all__ = [
    "ArtifactRecord",
    "ArtifactStore",
    "FrameAsset",
    "FrameInfo",
    "FrameLibrary",
    "FrameNotFoundError",
    "PartialRetentionFailure",
    "SUPPORTED_EXTENSIONS",
    "StorageError",
    "StorageModuleError",
]
