"""Custom exceptions for frame and artifact storage."""

from __future__ import annotations


class StorageModuleError(Exception):
    """Base exception for storage-related failures."""


class StorageError(StorageModuleError):
    """Raised when a single artifact operation fails on disk."""

    def __init__(self, message: str, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name


class FrameNotFoundError(StorageModuleError):
    """Raised when a frame id does not resolve to a frame asset."""


class PartialRetentionFailure(StorageModuleError):
    """Raised on request when a retention run completed with failed deletions."""

    def __init__(self, failures: list[StorageError]) -> None:
        names = ", ".join(str(failure.name) for failure in failures)
        super().__init__(f"{len(failures)} artifact deletion(s) failed: {names}")
        self.failures = failures
