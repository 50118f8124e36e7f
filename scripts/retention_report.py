"""Print artifact store statistics and optionally run one retention pass.

Exits 3 when a ``--run`` pass could not delete every artifact it selected.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from framebooth.config import load_settings
from framebooth.service import RetentionManager
from framebooth.storage import ArtifactStore


def build_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(description="Report on (and clean) the artifact store.")
    parser.add_argument(
        "--artifacts-dir",
        default=None,
        help="Artifact directory (default: ARTIFACTS_DIR setting).",
    )
    parser.add_argument(
        "--run",
        action="store_true",
        help="Run the age and size passes before reporting; exit 3 if any deletion fails.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the script and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    store = ArtifactStore(args.artifacts_dir or settings.artifacts_dir)
    manager = RetentionManager.from_settings(store, settings)

    payload: dict[str, object] = {}
    exit_code = 0
    if args.run:
        report = manager.run_retention(wait=True)
        payload["age_deleted"] = report.age.deleted_count
        payload["size_deleted"] = report.size.deleted_count
        payload["failures"] = [
            {"name": failure.name, "error": str(failure)} for failure in report.failures
        ]
        if report.failures:
            exit_code = 3

    payload["stats"] = manager.get_stats().as_dict()
    print(json.dumps(payload, ensure_ascii=False))
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
