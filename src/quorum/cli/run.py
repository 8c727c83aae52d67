# Copyright (c) Syntropy Systems
"""quorum run command."""

import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from quorum.aggregator import ResultAggregator
from quorum.cli.show import render_report
from quorum.config import QuorumConfig, find_quorum_dir, load_config
from quorum.correlation import enumerate_combinations
from quorum.dispatcher import Dispatcher
from quorum.errors import QuorumError
from quorum.launcher import GitHubActionsLauncher, JobLauncher
from quorum.listener import CallbackListener
from quorum.models.results import RunReport, TestCombination
from quorum.monitor import RetryMonitor
from quorum.server import ListenerServer, create_app
from quorum.snapshot import SNAPSHOTS_DIRNAME, default_snapshot_path, save_snapshot

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_launcher(config: QuorumConfig, token: str) -> JobLauncher:
    """Create the launcher used to reach the remote CI system."""
    if not config.repository:
        msg = "No repository configured. Pass --repository or set it in config.yaml."
        raise QuorumError(msg)
    return GitHubActionsLauncher(config.repository, token, ref=config.ref)


async def execute(
    config: QuorumConfig,
    launcher: JobLauncher,
    combinations: list[TestCombination],
) -> RunReport:
    """Serve the callback endpoint and collect every combination."""
    listener = CallbackListener(on_alert=lambda _message: console.bell())
    server = ListenerServer(
        create_app(listener, config.callback_header),
        host=config.listener_host,
        port=config.listener_port,
    )
    try:
        await server.start()
        # The bound port may differ when 0 was requested
        config = dataclasses.replace(config, listener_port=server.port)

        dispatcher = Dispatcher(
            launcher,
            listener,
            callback_url=config.callback_url,
            callback_header=config.callback_header,
            concurrency=config.concurrency,
        )
        monitor = RetryMonitor(
            launcher,
            sorted({c.job_kind for c in combinations}),
            interval=config.retry_interval,
        )
        aggregator = ResultAggregator(dispatcher, config.runs_per_combination, monitor)
        return await aggregator.run(combinations)
    finally:
        await server.stop()
        close = getattr(launcher, "close", None)
        if close is not None:
            await close()


def run(
    job_kind: list[str] = typer.Option(..., "--job-kind", "-k", help="Job kind (workflow) to run"),
    variant: list[str] = typer.Option(..., "--variant", "-b", help="Environment variant, e.g. browser"),
    work_item: list[str] = typer.Option(..., "--work-item", "-w", help="Work item, e.g. test plan"),
    runs: Optional[int] = typer.Option(None, "--runs", "-n", help="Attempts per combination"),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Maximum attempts in flight"
    ),
    retry_interval: Optional[int] = typer.Option(
        None, "--retry-interval", help="Seconds between failed-job polls"
    ),
    repository: Optional[str] = typer.Option(
        None, "--repository", "-r", help="owner/name of the workflow repository"
    ),
    public_url: Optional[str] = typer.Option(
        None,
        "--public-url",
        envvar="QUORUM_PUBLIC_URL",
        help="Public URL of the tunnel in front of the listener",
    ),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listener port"),
    snapshot: Optional[Path] = typer.Option(
        None, "--snapshot", "-o", help="Write the results to this snapshot file"
    ),
    token: Optional[str] = typer.Option(
        None, "--token", envvar="GITHUB_TOKEN", help="API token", show_default=False
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run every combination several times and compare the results.

    Example:
        quorum run -k voiceover.yml -b chrome -b safari -w plan1 -n 5

    """
    configure_logging(verbose)

    quorum_dir = find_quorum_dir()
    config = load_config(quorum_dir)
    overrides = {
        "runs_per_combination": runs,
        "concurrency": concurrency,
        "retry_interval": retry_interval,
        "repository": repository,
        "public_url": public_url,
        "listener_port": port,
    }
    config = dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})

    if not token:
        console.print("[red]Error:[/red] No API token. Set GITHUB_TOKEN or pass --token.")
        raise typer.Exit(1)

    if not config.public_url:
        console.print(
            "[yellow]Warning:[/yellow] No public URL configured, remote jobs will be "
            f"told to call back to {config.callback_url}"
        )

    combinations = list(enumerate_combinations(job_kind, variant, work_item))
    console.print(
        f"[bold]{len(combinations)} combination(s)[/bold] x "
        f"{config.runs_per_combination} run(s), concurrency {config.concurrency}"
    )

    try:
        launcher = build_launcher(config, token)
        report = asyncio.run(execute(config, launcher, combinations))
    except QuorumError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    snapshot_path = snapshot or (Path(config.snapshot_file) if config.snapshot_file else None)
    if snapshot_path is None and quorum_dir is not None:
        snapshot_path = default_snapshot_path(quorum_dir / SNAPSHOTS_DIRNAME, report.created_at)
    if snapshot_path is not None:
        _ = save_snapshot(report, snapshot_path)
        console.print(f"[green]Snapshot written:[/green] {snapshot_path}")

    console.print()
    render_report(report, out=console)
