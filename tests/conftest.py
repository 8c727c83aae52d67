# Copyright (c) Syntropy Systems
"""Pytest fixtures for quorum tests."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from helpers import FakeLauncher

from quorum.models.results import TestCombination

# Store original cwd at module load time
_original_cwd = Path.cwd()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def quorum_project(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary quorum project directory."""
    quorum_dir = temp_dir / ".quorum"
    quorum_dir.mkdir()
    (quorum_dir / "snapshots").mkdir()

    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def combination() -> TestCombination:
    """The combination used by most scenarios."""
    return TestCombination(job_kind="X", variant="chrome", work_item="plan1")


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    """A fresh in-memory launcher."""
    return FakeLauncher()
