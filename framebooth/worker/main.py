"""Periodic artifact retention worker."""

from __future__ import annotations

import logging
import time

from framebooth.config import load_settings
from framebooth.service import RetentionManager, format_bytes
from framebooth.storage import ArtifactStore


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
LOGGER = logging.getLogger("framebooth.worker")


def run(iterations: int | None = None) -> None:
    """Run retention once at startup and then every configured interval."""
    settings = load_settings()
    store = ArtifactStore(settings.artifacts_dir)
    store.ensure_directory()
    manager = RetentionManager.from_settings(store, settings)
    LOGGER.info(
        "Starting retention worker dir=%s interval=%ss max_age=%ss max_size=%s",
        store.root,
        settings.retention_interval_seconds,
        settings.max_file_age_seconds,
        format_bytes(settings.max_total_bytes),
    )

    completed = 0
    while iterations is None or completed < iterations:
        loop_started = time.monotonic()
        try:
            report = manager.run_retention()
            if report.skipped:
                LOGGER.info("Retention skipped; another run is active")
            elif report.stats is not None:
                LOGGER.info(
                    "Artifact store: files=%s size=%s oldest=%s",
                    report.stats.file_count,
                    format_bytes(report.stats.total_size),
                    report.stats.oldest_file,
                )
        except Exception as exc:
            LOGGER.exception("Retention iteration failed: %s", exc)

        completed += 1
        if iterations is not None and completed >= iterations:
            break
        elapsed = time.monotonic() - loop_started
        sleep_seconds = max(0.0, settings.retention_interval_seconds - elapsed)
        time.sleep(sleep_seconds)


if __name__ == "__main__":
    run()
