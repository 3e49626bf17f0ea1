# Copyright (c) Syntropy Systems
"""baseliner baselines command."""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from baseliner.config import get_baselines_dir, require_baseliner_dir
from baseliner.repository import BaselineRepository

console = Console()


def baselines(
    operation: Optional[str] = typer.Option(
        None,
        "--operation", "-o",
        help="Only show baselines for this operation",
    ),
) -> None:
    """List recorded baselines.

    Shows footprint, covariate values and observed rate for each file.
    """
    try:
        baseliner_dir = require_baseliner_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    repository = BaselineRepository(get_baselines_dir(baseliner_dir))
    records = [
        (path, record)
        for path, record in repository.load_all()
        if operation is None or record.operation == operation
    ]

    if not records:
        console.print("[dim]No baselines found[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("File", style="dim")
    table.add_column("Operation")
    table.add_column("Footprint")
    table.add_column("Covariates")
    table.add_column("Samples", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Generated")

    for path, record in records:
        covariates = escape(", ".join(f"{k}={v}" for k, v in record.covariates.items()))
        rate = record.successes / record.samples if record.samples else 0.0
        table.add_row(
            escape(path.name),
            escape(record.operation),
            record.footprint[:8],
            covariates or "-",
            str(record.samples),
            f"{rate:.4f}",
            record.generated_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)
