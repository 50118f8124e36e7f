"""Flat-directory store for composite artifacts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Final
from uuid import uuid4
import logging
import os

from .exceptions import StorageError


LOGGER = logging.getLogger(__name__)
SUPPORTED_EXTENSIONS: Final[tuple[str, ...]] = (".jpg", ".jpeg", ".png", ".webp")


@dataclass(frozen=True, slots=True)
class ArtifactRecord:
    """Metadata for one persisted artifact."""

    name: str
    path: str
    size: int
    mtime: datetime

    def age(self, now: datetime) -> timedelta:
        return now - self.mtime


class ArtifactStore:
    """Read, write, list and delete artifacts in one directory."""

    def __init__(self, root: str | Path, extensions: tuple[str, ...] = SUPPORTED_EXTENSIONS) -> None:
        self.root = Path(root).expanduser()
        self.extensions = tuple(ext.lower() for ext in extensions)

    def ensure_directory(self) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create artifact directory {self.root}: {exc}") from exc
        return self.root

    def is_artifact_name(self, name: str) -> bool:
        return Path(name).suffix.lower() in self.extensions

    def list_artifacts(self) -> list[ArtifactRecord]:
        """Return records for every artifact file; a missing directory is empty."""
        if not self.root.exists():
            return []

        try:
            entries = sorted(self.root.iterdir())
        except OSError as exc:
            raise StorageError(f"Cannot list artifact directory {self.root}: {exc}") from exc

        records: list[ArtifactRecord] = []
        for entry in entries:
            if not self.is_artifact_name(entry.name):
                continue
            try:
                if not entry.is_file():
                    continue
                records.append(self._record(entry))
            except FileNotFoundError:
                # removed between listing and stat
                continue
            except OSError as exc:
                LOGGER.warning("Skipping unreadable artifact %s: %s", entry.name, exc)
                continue
        return records

    def path_for(self, name: str) -> Path:
        if not name or name in (".", "..") or Path(name).name != name:
            raise StorageError(f"Invalid artifact name: {name!r}", name=name)
        return self.root / name

    def read(self, name: str) -> bytes:
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Cannot read artifact: {exc}", name=name) from exc

    def write(self, name: str, data: bytes) -> ArtifactRecord:
        """Write artifact bytes atomically and return the stored record."""
        target = self.path_for(name)
        self.ensure_directory()
        try:
            temp_file = NamedTemporaryFile(dir=self.root, prefix=".tmp-", delete=False)
        except OSError as exc:
            raise StorageError(f"Cannot write artifact: {exc}", name=name) from exc
        temp_path = Path(temp_file.name)
        try:
            with temp_file:
                temp_file.write(data)
            os.replace(temp_path, target)
            return self._record(target)
        except OSError as exc:
            raise StorageError(f"Cannot write artifact: {exc}", name=name) from exc
        finally:
            temp_path.unlink(missing_ok=True)

    def delete(self, name: str) -> None:
        path = self.path_for(name)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise StorageError("Artifact already removed.", name=name) from exc
        except OSError as exc:
            raise StorageError(f"Cannot delete artifact: {exc}", name=name) from exc

    def generate_name(
        self,
        prefix: str = "photo",
        extension: str = "jpg",
        now: datetime | None = None,
    ) -> str:
        """Build a timestamped, collision-resistant artifact filename."""
        moment = now or datetime.now(timezone.utc)
        timestamp = moment.strftime("%Y-%m-%dT%H-%M-%S")
        return f"{prefix}_{timestamp}_{uuid4().hex[:8]}.{extension.lstrip('.')}"

    @staticmethod
    def _record(path: Path) -> ArtifactRecord:
        stat = path.stat()
        return ArtifactRecord(
            name=path.name,
            path=str(path),
            size=stat.st_size,
            mtime=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )
