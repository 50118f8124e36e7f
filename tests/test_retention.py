from __future__ import annotations

from datetime import datetime, timedelta, timezone
import os
from pathlib import Path
import tempfile
import threading
import unittest

from framebooth.config import default_settings
from framebooth.service import RetentionManager, format_bytes, format_duration
from framebooth.storage import ArtifactRecord, ArtifactStore, PartialRetentionFailure, StorageError


NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
MB = 1024 * 1024


class _FakeStore:
    """In-memory artifact store with optional failing deletes."""

    def __init__(self, records: list[ArtifactRecord], failing: set[str] | None = None) -> None:
        self.records = {record.name: record for record in records}
        self.failing = failing or set()
        self.list_calls = 0

    def list_artifacts(self) -> list[ArtifactRecord]:
        self.list_calls += 1
        return sorted(self.records.values(), key=lambda record: record.name)

    def delete(self, name: str) -> None:
        if name in self.failing:
            raise StorageError("Permission denied", name=name)
        if self.records.pop(name, None) is None:
            raise StorageError("Artifact already removed.", name=name)


class _BrokenStore:
    def list_artifacts(self) -> list[ArtifactRecord]:
        raise StorageError("Cannot list artifact directory")


class _BlockingStore(_FakeStore):
    def __init__(self, records: list[ArtifactRecord]) -> None:
        super().__init__(records)
        self.entered = threading.Event()
        self.release = threading.Event()

    def list_artifacts(self) -> list[ArtifactRecord]:
        self.entered.set()
        self.release.wait(timeout=5)
        return super().list_artifacts()


def _record(name: str, size: int, age: timedelta) -> ArtifactRecord:
    return ArtifactRecord(name=name, path=f"/tmp/{name}", size=size, mtime=NOW - age)


def _manager(store, max_age: timedelta = timedelta(hours=24), max_total_bytes: int = 100 * MB):
    return RetentionManager(store, max_age=max_age, max_total_bytes=max_total_bytes, clock=lambda: NOW)


class RetentionManagerTests(unittest.TestCase):
    def test_nothing_deleted_within_budgets(self) -> None:
        store = _FakeStore([_record(f"p{i}.jpg", MB, timedelta(hours=i)) for i in range(5)])

        report = _manager(store).run_retention()

        self.assertEqual(report.age.deleted_count, 0)
        self.assertEqual(report.size.deleted_count, 0)
        self.assertEqual(report.size.resulting_total_size, 5 * MB)
        self.assertEqual(len(store.records), 5)
        self.assertFalse(report.skipped)
        self.assertEqual(report.failures, [])

    def test_age_pass_deletes_every_expired_artifact(self) -> None:
        store = _FakeStore(
            [
                _record("old1.jpg", 10, timedelta(hours=25)),
                _record("old2.jpg", 10, timedelta(days=3)),
                _record("new.jpg", 10, timedelta(hours=23)),
                _record("edge.jpg", 10, timedelta(hours=24)),
            ]
        )

        report = _manager(store).run_retention()

        self.assertEqual(report.age.deleted_count, 2)
        self.assertEqual(sorted(report.age.deleted), ["old1.jpg", "old2.jpg"])
        self.assertEqual(sorted(store.records), ["edge.jpg", "new.jpg"])
        self.assertEqual(report.age.resulting_total_size, 20)

    def test_size_pass_deletes_two_oldest_of_five(self) -> None:
        store = _FakeStore([_record(f"p{i}.jpg", 10 * MB, timedelta(hours=1)) for i in range(5)])

        report = _manager(store, max_total_bytes=35 * MB).run_retention()

        self.assertEqual(report.size.deleted_count, 2)
        self.assertEqual(report.size.resulting_total_size, 30 * MB)
        self.assertEqual(len(store.records), 3)
        self.assertEqual(report.stats.total_size, 30 * MB)
        self.assertEqual(report.stats.file_count, 3)

    def test_size_pass_deletes_strictly_oldest_first(self) -> None:
        ages = {"a.jpg": 5, "b.jpg": 1, "c.jpg": 9, "d.jpg": 3, "e.jpg": 7}
        store = _FakeStore([_record(name, 10, timedelta(hours=h)) for name, h in ages.items()])

        report = _manager(store, max_total_bytes=25).run_retention()

        self.assertEqual(report.size.deleted, ["c.jpg", "e.jpg", "a.jpg"])
        self.assertEqual(sorted(store.records), ["b.jpg", "d.jpg"])
        self.assertEqual(report.size.resulting_total_size, 20)

    def test_size_pass_runs_on_age_survivors(self) -> None:
        store = _FakeStore(
            [
                _record("expired.jpg", 50, timedelta(days=2)),
                _record("older.jpg", 30, timedelta(hours=10)),
                _record("newer.jpg", 30, timedelta(hours=1)),
            ]
        )

        report = _manager(store, max_total_bytes=40).run_retention()

        self.assertEqual(report.age.deleted, ["expired.jpg"])
        self.assertEqual(report.size.deleted, ["older.jpg"])
        self.assertEqual(list(store.records), ["newer.jpg"])
        self.assertEqual(store.list_calls, 1)

    def test_explicit_budgets_override_defaults(self) -> None:
        store = _FakeStore([_record("a.jpg", 10, timedelta(hours=2))])

        report = _manager(store).run_retention(max_age=timedelta(hours=1))

        self.assertEqual(report.age.deleted, ["a.jpg"])

    def test_failed_deletions_are_recorded_and_pass_continues(self) -> None:
        store = _FakeStore(
            [
                _record("locked.jpg", 10, timedelta(days=2)),
                _record("old.jpg", 10, timedelta(days=2)),
                _record("fresh.jpg", 10, timedelta(hours=1)),
            ],
            failing={"locked.jpg"},
        )

        report = _manager(store).run_retention()

        self.assertEqual(report.age.deleted, ["old.jpg"])
        self.assertEqual([failure.name for failure in report.failures], ["locked.jpg"])
        self.assertEqual(report.age.resulting_total_size, 20)
        with self.assertRaises(PartialRetentionFailure) as ctx:
            report.raise_for_failures()
        self.assertEqual(ctx.exception.failures, report.failures)

    def test_failed_size_deletion_moves_on_to_next_oldest(self) -> None:
        store = _FakeStore(
            [
                _record("oldest.jpg", 10, timedelta(hours=3)),
                _record("middle.jpg", 10, timedelta(hours=2)),
                _record("newest.jpg", 10, timedelta(hours=1)),
            ],
            failing={"oldest.jpg"},
        )

        report = _manager(store, max_total_bytes=20).run_retention()

        self.assertEqual(report.size.deleted, ["middle.jpg"])
        self.assertEqual(report.size.resulting_total_size, 20)
        self.assertEqual(len(report.size.failures), 1)

    def test_age_failure_is_not_retried_by_size_pass(self) -> None:
        store = _FakeStore(
            [
                _record("locked.jpg", 50, timedelta(days=2)),
                _record("a.jpg", 30, timedelta(hours=3)),
                _record("b.jpg", 30, timedelta(hours=1)),
            ],
            failing={"locked.jpg"},
        )

        report = _manager(store, max_total_bytes=80).run_retention()

        self.assertEqual([failure.name for failure in report.failures], ["locked.jpg"])
        self.assertEqual(report.size.failures, [])
        self.assertEqual(report.size.deleted, ["a.jpg"])
        self.assertEqual(report.size.resulting_total_size, 80)
        self.assertEqual(sorted(store.records), ["b.jpg", "locked.jpg"])

    def test_listing_failure_never_raises(self) -> None:
        report = _manager(_BrokenStore()).run_retention()

        self.assertEqual(report.age.deleted_count, 0)
        self.assertEqual(len(report.failures), 1)
        self.assertEqual(report.stats.file_count, 0)

    def test_concurrent_trigger_is_skipped_or_queued(self) -> None:
        store = _BlockingStore([_record("old.jpg", 10, timedelta(days=2))])
        manager = _manager(store)
        results = {}

        first = threading.Thread(target=lambda: results.setdefault("first", manager.run_retention()))
        first.start()
        self.assertTrue(store.entered.wait(timeout=5))
        self.assertTrue(manager.running)

        skipped = manager.run_retention()
        queued = threading.Thread(
            target=lambda: results.setdefault("queued", manager.run_retention(wait=True))
        )
        queued.start()
        store.release.set()
        first.join(timeout=5)
        queued.join(timeout=5)

        self.assertTrue(skipped.skipped)
        self.assertIsNone(skipped.stats)
        self.assertEqual(results["first"].age.deleted, ["old.jpg"])
        self.assertFalse(results["queued"].skipped)
        self.assertEqual(results["queued"].age.deleted_count, 0)
        self.assertEqual(results["queued"].failures, [])
        self.assertFalse(manager.running)

    def test_individual_passes(self) -> None:
        store = _FakeStore(
            [
                _record("old.jpg", 10, timedelta(days=2)),
                _record("a.jpg", 30, timedelta(hours=2)),
                _record("b.jpg", 30, timedelta(hours=1)),
            ]
        )
        manager = _manager(store, max_total_bytes=40)

        age_result = manager.run_age_pass()
        size_result = manager.run_size_pass()

        self.assertEqual(age_result.deleted, ["old.jpg"])
        self.assertEqual(size_result.deleted, ["a.jpg"])
        self.assertEqual(size_result.resulting_total_size, 30)

    def test_stats_are_read_only(self) -> None:
        store = _FakeStore(
            [
                _record("a.jpg", 5, timedelta(days=3)),
                _record("b.jpg", 7, timedelta(minutes=5)),
            ]
        )

        stats = _manager(store).get_stats()

        self.assertEqual(stats.file_count, 2)
        self.assertEqual(stats.total_size, 12)
        self.assertEqual(stats.oldest_file, "a.jpg")
        self.assertEqual(stats.oldest_file_age, timedelta(days=3))
        self.assertEqual(len(store.records), 2)
        self.assertEqual(stats.as_dict()["oldest_file_age"], "72h 0m 0s")

    def test_stats_for_empty_store(self) -> None:
        stats = _manager(_FakeStore([])).get_stats()
        self.assertEqual((stats.file_count, stats.total_size), (0, 0))
        self.assertIsNone(stats.oldest_file_age)

    def test_from_settings_uses_configured_budgets(self) -> None:
        settings = default_settings(max_file_age_seconds=60, max_total_bytes=1234)
        manager = RetentionManager.from_settings(_FakeStore([]), settings)
        self.assertEqual(manager.max_age, timedelta(seconds=60))
        self.assertEqual(manager.max_total_bytes, 1234)


class RetentionOnDiskTests(unittest.TestCase):
    def test_runs_against_real_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            now_ts = NOW.timestamp()
            for index, hours in enumerate((30, 3, 2, 1)):
                path = root / f"photo_{index}.jpg"
                with path.open("wb") as handle:
                    handle.truncate(10 * MB)
                mtime = now_ts - hours * 3600
                os.utime(path, (mtime, mtime))
            (root / "keep.txt").write_text("not an artifact")

            manager = _manager(ArtifactStore(root), max_total_bytes=25 * MB)
            report = manager.run_retention()

            self.assertEqual(report.age.deleted, ["photo_0.jpg"])
            self.assertEqual(report.size.deleted, ["photo_1.jpg"])
            self.assertEqual(
                sorted(path.name for path in root.iterdir()),
                ["keep.txt", "photo_2.jpg", "photo_3.jpg"],
            )
            self.assertEqual(manager.get_stats().oldest_file, "photo_2.jpg")


class FormattingTests(unittest.TestCase):
    def test_format_bytes(self) -> None:
        self.assertEqual(format_bytes(0), "0 Bytes")
        self.assertEqual(format_bytes(512), "512 Bytes")
        self.assertEqual(format_bytes(1536), "1.5 KB")
        self.assertEqual(format_bytes(100 * MB), "100 MB")

    def test_format_duration(self) -> None:
        self.assertEqual(format_duration(42), "42s")
        self.assertEqual(format_duration(125), "2m 5s")
        self.assertEqual(format_duration(3 * 3600 + 61), "3h 1m 1s")


if __name__ == "__main__":
    unittest.main()
