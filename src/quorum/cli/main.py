# Copyright (c) Syntropy Systems
"""Main CLI entry point for quorum."""

import typer

from quorum.cli.init_cmd import init
from quorum.cli.run import run
from quorum.cli.show import show

app = typer.Typer(
    name="quorum",
    help=(
        "Run remote test jobs repeatedly and reduce the runs to a "
        "consensus result with outliers flagged."
    ),
    no_args_is_help=True,
    add_completion=False,
)

# Register commands
_ = app.command()(init)
_ = app.command()(run)
_ = app.command()(show)


if __name__ == "__main__":
    app()
