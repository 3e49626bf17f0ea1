# Copyright (c) Syntropy Systems
"""Main CLI entry point for baseliner."""

import typer

from baseliner.cli.baselines import baselines
from baseliner.cli.expiration import expiration
from baseliner.cli.init_cmd import init
from baseliner.cli.select import select
from baseliner.cli.threshold import threshold

app = typer.Typer(
    name="baseliner",
    help=(
        "Covariate-aware baseline selection. Match today's conditions, "
        "size the threshold to the run."
    ),
    no_args_is_help=True,
    add_completion=False,
)

# Register commands
_ = app.command()(init)
_ = app.command()(baselines)
_ = app.command()(select)
_ = app.command()(threshold)
_ = app.command()(expiration)


if __name__ == "__main__":
    app()
