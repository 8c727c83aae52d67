# Copyright (c) Syntropy Systems
"""quorum init command."""

from dataclasses import asdict
from pathlib import Path

import typer
import yaml
from rich.console import Console

from quorum.config import CONFIG_FILENAME, QuorumConfig
from quorum.snapshot import SNAPSHOTS_DIRNAME

console = Console()


def init(
    path: Path = typer.Argument(
        Path(),
        help="Directory to initialize (default: current directory)",
    ),
) -> None:
    """Initialize a new quorum project.

    Creates a .quorum directory holding the default configuration.
    """
    target = path.resolve()
    quorum_dir = target / ".quorum"

    if quorum_dir.exists():
        console.print(f"[yellow]Already initialized:[/yellow] {quorum_dir}")
        return

    quorum_dir.mkdir(parents=True)
    snapshots_dir = quorum_dir / SNAPSHOTS_DIRNAME
    snapshots_dir.mkdir()

    config = asdict(QuorumConfig())

    config_path = quorum_dir / CONFIG_FILENAME
    with config_path.open("w") as f:
        yaml.dump(config, f, default_flow_style=False)

    console.print(f"[green]Initialized quorum project:[/green] {quorum_dir}")
    console.print(f"  [dim]config:[/dim] {config_path}")
    console.print(f"  [dim]snapshots:[/dim] {snapshots_dir}")
