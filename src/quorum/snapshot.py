# Copyright (c) Syntropy Systems
"""Flat-file snapshots of a run's comparison records."""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from quorum.errors import SnapshotError
from quorum.models.results import RunReport

logger = logging.getLogger(__name__)

SNAPSHOTS_DIRNAME = "snapshots"


def save_snapshot(report: RunReport, path: Path) -> Path:
    """Write a run report to ``path`` atomically.

    Args:
        report: The report to persist
        path: Destination file

    Returns:
        The path written

    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w") as f:
            _ = f.write(report.model_dump_json(by_alias=True, indent=2))
        _ = Path(tmp_name).replace(path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Wrote snapshot with %d combination(s) to %s", len(report.reports), path)
    return path


def load_snapshot(path: Path) -> RunReport:
    """Read a run report written by save_snapshot.

    Raises:
        SnapshotError: If the file is missing or does not hold a valid report.

    """
    path = Path(path)
    try:
        return RunReport.model_validate_json(path.read_text())
    except FileNotFoundError as e:
        msg = f"Snapshot not found: {path}"
        raise SnapshotError(msg) from e
    except ValidationError as e:
        msg = f"Invalid snapshot {path}: {e}"
        raise SnapshotError(msg) from e


def default_snapshot_path(snapshots_dir: Path, created_at: datetime) -> Path:
    """Path a run's snapshot is written to inside a project."""
    return Path(snapshots_dir) / f"{created_at:%Y%m%d-%H%M%S}.json"


def latest_snapshot(snapshots_dir: Path) -> Path:
    """Return the most recently written snapshot in ``snapshots_dir``.

    Raises:
        SnapshotError: If the directory holds no snapshots.

    """
    snapshots = sorted(Path(snapshots_dir).glob("*.json"), key=lambda p: (p.stat().st_mtime, p.name))
    if not snapshots:
        msg = f"No snapshots in {snapshots_dir}"
        raise SnapshotError(msg)
    return snapshots[-1]
