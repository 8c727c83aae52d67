# Copyright (c) Syntropy Systems
"""Configuration management for quorum."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import cast

import yaml

CONFIG_FILENAME = "config.yaml"


@dataclass
class QuorumConfig:
    """Configuration for quorum."""

    # Maximum attempts awaiting a callback at once
    concurrency: int = 8

    # Redundant attempts per combination
    runs_per_combination: int = 5

    # Seconds between retry monitor polls
    retry_interval: int = 60

    listener_host: str = "127.0.0.1"
    listener_port: int = 8910

    # Header remote jobs put the correlation key in
    callback_header: str = "x-quorum-correlation-key"

    # Public URL of the tunnel in front of the listener
    public_url: str | None = None

    # owner/name of the repository hosting the workflows
    repository: str | None = None
    ref: str = "main"

    snapshot_file: str | None = None

    @property
    def callback_url(self) -> str:
        """URL remote jobs post their callbacks to."""
        if self.public_url:
            return f"{self.public_url.rstrip('/')}/callback"
        return f"http://{self.listener_host}:{self.listener_port}/callback"


_INT_FIELDS = ("concurrency", "runs_per_combination", "retry_interval", "listener_port")
_STR_FIELDS = (
    "listener_host",
    "callback_header",
    "public_url",
    "repository",
    "ref",
    "snapshot_file",
)


def find_quorum_dir(start_path: Path | None = None) -> Path | None:
    """Find the nearest .quorum directory by walking up from start_path.

    Returns None if no .quorum directory is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        quorum_dir = current / ".quorum"
        if quorum_dir.is_dir():
            return quorum_dir
        current = current.parent

    # Check root
    quorum_dir = current / ".quorum"
    if quorum_dir.is_dir():
        return quorum_dir

    return None


def get_global_config_dir() -> Path:
    """Get the global quorum config directory (~/.quorum)."""
    return Path.home() / ".quorum"


def load_config(quorum_dir: Path | None = None) -> QuorumConfig:
    """Load configuration from .quorum/config.yaml or defaults.

    Looks for config in:
    1. Provided quorum_dir
    2. Nearest .quorum directory walking up
    3. ~/.quorum/config.yaml
    4. Defaults
    """
    config = QuorumConfig()

    config_path = None

    if quorum_dir is not None:
        config_path = quorum_dir / CONFIG_FILENAME
    else:
        found_dir = find_quorum_dir()
        if found_dir is not None:
            config_path = found_dir / CONFIG_FILENAME
        else:
            global_config = get_global_config_dir() / CONFIG_FILENAME
            if global_config.exists():
                config_path = global_config

    if config_path is not None and config_path.exists():
        with config_path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})

        for name in _INT_FIELDS:
            value = data.get(name)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                setattr(config, name, int(value))
        for name in _STR_FIELDS:
            value = data.get(name)
            if isinstance(value, str):
                setattr(config, name, value)

    return config


def require_quorum_dir() -> Path:
    """Get quorum directory or raise an error if not found."""
    quorum_dir = find_quorum_dir()
    if quorum_dir is None:
        msg = "No .quorum directory found. Run 'quorum init' first."
        raise RuntimeError(
            msg
        )
    return quorum_dir
