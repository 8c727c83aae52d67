# Copyright (c) Syntropy Systems
"""Show command - print the comparison records held in a snapshot."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from quorum.config import require_quorum_dir
from quorum.errors import SnapshotError
from quorum.models.results import RunReport
from quorum.snapshot import SNAPSHOTS_DIRNAME, latest_snapshot, load_snapshot

console = Console()


def _values(values: list[str]) -> str:
    return " | ".join(values) if values else "[dim](none)[/dim]"


def render_report(report: RunReport, details: bool = True, out: Console | None = None) -> None:
    """Print a summary table and, optionally, every divergence."""
    out = out or console

    summary = Table(show_header=True, header_style="bold")
    summary.add_column("Combination", style="cyan")
    summary.add_column("Attempts", justify="right")
    summary.add_column("Failed", justify="right")
    summary.add_column("Rows", justify="right")
    summary.add_column("Equal", justify="right")
    summary.add_column("Unequal", justify="right")
    summary.add_column("Divergent rows")

    for entry in report.reports:
        comparison = entry.comparison
        failed = len(entry.failed_attempts)
        unequal = comparison.unequal_rows
        summary.add_row(
            entry.combination.label(),
            str(len(entry.attempts)),
            f"[red]{failed}[/red]" if failed else "0",
            str(comparison.total_rows),
            str(comparison.equal_rows),
            f"[yellow]{unequal}[/yellow]" if unequal else "0",
            ", ".join(str(row_id) for row_id in comparison.divergent_row_ids()) or "-",
        )

    out.print(summary)

    if details:
        for entry in report.reports:
            divergent = [row for row in entry.comparison.rows if row.divergences]
            if not divergent:
                continue

            out.print(f"\n[bold]{entry.combination.label()}[/bold]")
            table = Table(show_header=True, header_style="bold")
            table.add_column("Row", justify="right", style="dim")
            table.add_column("Baseline")
            table.add_column("Attempt", justify="right")
            table.add_column("Response")
            for row in divergent:
                for divergence in row.divergences:
                    table.add_row(
                        str(row.row_id),
                        _values(row.baseline),
                        str(divergence.attempt_index),
                        f"[yellow]{_values(divergence.response_values)}[/yellow]",
                    )
            out.print(table)

    if report.retried_jobs:
        out.print(f"\n[bold]Re-run remote jobs ({len(report.retried_jobs)})[/bold]")
        for job in report.retried_jobs:
            out.print(f"  - #{job.id} {job.job_kind} [dim]{job.html_url or ''}[/dim]")


def show(
    snapshot: Optional[Path] = typer.Argument(
        None, help="Snapshot file (default: newest snapshot in the project)"
    ),
    details: bool = typer.Option(
        True,
        "--details/--no-details",
        help="List every divergent row",
    ),
) -> None:
    """Show the comparison records stored in a snapshot.

    Examples:
        quorum show
        quorum show .quorum/snapshots/20260101-120000.json

    """
    try:
        if snapshot is None:
            snapshot = latest_snapshot(require_quorum_dir() / SNAPSHOTS_DIRNAME)
        report = load_snapshot(snapshot)
    except (RuntimeError, SnapshotError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    console.print(
        f"\n[bold]{len(report.reports)} combination(s)[/bold] "
        f"[dim]captured {report.created_at:%Y-%m-%d %H:%M:%S}[/dim]\n"
    )
    render_report(report, details=details)
