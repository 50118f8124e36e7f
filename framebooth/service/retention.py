"""Artifact retention rules."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import logging
import threading

from framebooth.config import DEFAULT_MAX_FILE_AGE_SECONDS, DEFAULT_MAX_TOTAL_BYTES, AppSettings
from framebooth.storage import ArtifactRecord, ArtifactStore, PartialRetentionFailure, StorageError


LOGGER = logging.getLogger(__name__)
BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


@dataclass(slots=True)
class RetentionPassResult:
    """Outcome of one age or size pass."""

    deleted_count: int = 0
    resulting_total_size: int = 0
    deleted: list[str] = field(default_factory=list)
    failures: list[StorageError] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RetentionStats:
    file_count: int
    total_size: int
    oldest_file: str | None
    oldest_file_age: timedelta | None

    def as_dict(self) -> dict[str, object]:
        age = self.oldest_file_age
        return {
            "file_count": self.file_count,
            "total_size": self.total_size,
            "total_size_formatted": format_bytes(self.total_size),
            "oldest_file": self.oldest_file,
            "oldest_file_age": format_duration(age.total_seconds()) if age is not None else None,
        }


@dataclass(slots=True)
class RetentionReport:
    """Combined result of an age pass followed by a size pass."""

    age: RetentionPassResult
    size: RetentionPassResult
    stats: RetentionStats | None
    skipped: bool = False

    @property
    def failures(self) -> list[StorageError]:
        return [*self.age.failures, *self.size.failures]

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialRetentionFailure(self.failures)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RetentionManager:
    """Keep the artifact store within an age budget and a total-size budget.

    Every pass runs under one lock, so a timer-driven run and an on-demand run
    never interleave their delete decisions. Failed deletions are recorded in
    the pass result instead of being raised.
    """

    def __init__(
        self,
        store: ArtifactStore,
        max_age: timedelta = timedelta(seconds=DEFAULT_MAX_FILE_AGE_SECONDS),
        max_total_bytes: int = DEFAULT_MAX_TOTAL_BYTES,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.max_age = max_age
        self.max_total_bytes = max_total_bytes
        self._clock = clock
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, store: ArtifactStore, settings: AppSettings) -> RetentionManager:
        return cls(store, max_age=settings.max_file_age, max_total_bytes=settings.max_total_bytes)

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run_retention(
        self,
        max_age: timedelta | None = None,
        max_total_bytes: int | None = None,
        wait: bool = False,
    ) -> RetentionReport:
        """Run the age pass, then the size pass over its survivors.

        When another run holds the lock, return a skipped report unless
        ``wait`` is set, in which case block until it finishes.
        """
        if not self._lock.acquire(blocking=wait):
            LOGGER.info("Retention run already in progress; skipping")
            return RetentionReport(
                age=RetentionPassResult(), size=RetentionPassResult(), stats=None, skipped=True
            )

        try:
            now = self._clock()
            age_result, survivors = self._age_pass(
                max_age if max_age is not None else self.max_age, now
            )
            size_result, remaining = self._size_pass(
                survivors,
                max_total_bytes if max_total_bytes is not None else self.max_total_bytes,
                failed={failure.name for failure in age_result.failures if failure.name},
            )
            stats = _summarise(remaining, now)
        finally:
            self._lock.release()

        report = RetentionReport(age=age_result, size=size_result, stats=stats)
        if report.failures:
            LOGGER.warning("Retention finished with %s failed deletion(s)", len(report.failures))
        LOGGER.info(
            "Retention done; age_deleted=%s size_deleted=%s total=%s",
            age_result.deleted_count,
            size_result.deleted_count,
            format_bytes(size_result.resulting_total_size),
        )
        return report

    def run_age_pass(
        self, max_age: timedelta | None = None, now: datetime | None = None
    ) -> RetentionPassResult:
        """Delete every artifact older than ``max_age``."""
        with self._lock:
            result, _ = self._age_pass(
                max_age if max_age is not None else self.max_age, now or self._clock()
            )
        return result

    def run_size_pass(self, max_total_bytes: int | None = None) -> RetentionPassResult:
        """Delete oldest artifacts until the store fits ``max_total_bytes``."""
        with self._lock:
            result = RetentionPassResult()
            records = self._list(result)
            size_result, _ = self._size_pass(
                records,
                max_total_bytes if max_total_bytes is not None else self.max_total_bytes,
            )
        size_result.failures[:0] = result.failures
        return size_result

    def get_stats(self, now: datetime | None = None) -> RetentionStats:
        """Summarise the store without modifying it."""
        try:
            records = self.store.list_artifacts()
        except StorageError as exc:
            LOGGER.error("Cannot read artifact store for stats: %s", exc)
            records = []
        return _summarise(records, now or self._clock())

    def _list(self, result: RetentionPassResult) -> list[ArtifactRecord]:
        try:
            return self.store.list_artifacts()
        except StorageError as exc:
            LOGGER.error("Cannot list artifact store: %s", exc)
            result.failures.append(exc)
            return []

    def _age_pass(
        self, max_age: timedelta, now: datetime
    ) -> tuple[RetentionPassResult, list[ArtifactRecord]]:
        result = RetentionPassResult()
        survivors: list[ArtifactRecord] = []
        for record in self._list(result):
            if record.age(now) > max_age and self._delete(record, result, "age limit"):
                continue
            survivors.append(record)
        result.resulting_total_size = sum(record.size for record in survivors)
        return result, survivors

    def _size_pass(
        self,
        records: list[ArtifactRecord],
        max_total_bytes: int,
        failed: set[str] | None = None,
    ) -> tuple[RetentionPassResult, list[ArtifactRecord]]:
        total = sum(record.size for record in records)
        result = RetentionPassResult(resulting_total_size=total)
        if total <= max_total_bytes:
            return result, list(records)

        remaining: list[ArtifactRecord] = []
        for record in sorted(records, key=lambda item: (item.mtime, item.name)):
            if (
                total > max_total_bytes
                and record.name not in (failed or ())
                and self._delete(record, result, "size limit")
            ):
                total -= record.size
                continue
            remaining.append(record)
        result.resulting_total_size = total
        return result, remaining

    def _delete(self, record: ArtifactRecord, result: RetentionPassResult, reason: str) -> bool:
        try:
            self.store.delete(record.name)
        except StorageError as exc:
            LOGGER.warning("Failed to delete %s (%s): %s", record.name, reason, exc)
            result.failures.append(exc)
            return False
        LOGGER.info("Deleted %s (%s)", record.name, reason)
        result.deleted_count += 1
        result.deleted.append(record.name)
        return True


def _summarise(records: list[ArtifactRecord], now: datetime) -> RetentionStats:
    if not records:
        return RetentionStats(file_count=0, total_size=0, oldest_file=None, oldest_file_age=None)
    oldest = min(records, key=lambda record: record.mtime)
    return RetentionStats(
        file_count=len(records),
        total_size=sum(record.size for record in records),
        oldest_file=oldest.name,
        oldest_file_age=oldest.age(now),
    )


def format_bytes(size: int) -> str:
    """Format a byte count as a short human-readable string."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    exponent = 0
    while value >= 1024 and exponent < len(BYTE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {BYTE_UNITS[exponent]}"


def format_duration(seconds: float) -> str:
    total = max(int(seconds), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
