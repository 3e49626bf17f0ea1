# Copyright (c) Syntropy Systems
"""baseliner expiration command."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from baseliner.config import get_baselines_dir, require_baseliner_dir
from baseliner.expiration import describe_status
from baseliner.models.expiration import (
    Expired,
    ExpiringImminently,
    ExpiringSoon,
    NoExpiration,
    Valid,
)
from baseliner.repository import BaselineRepository

console = Console()


def _status_style(
    status: NoExpiration | Valid | ExpiringSoon | ExpiringImminently | Expired,
) -> str:
    if isinstance(status, Expired):
        return "red"
    if isinstance(status, ExpiringImminently):
        return "red"
    if isinstance(status, ExpiringSoon):
        return "yellow"
    if isinstance(status, Valid):
        return "green"
    return "dim"


def expiration(
    operation: Optional[str] = typer.Option(
        None,
        "--operation", "-o",
        help="Only check baselines for this operation",
    ),
    at: Optional[datetime] = typer.Option(
        None,
        "--at",
        help="Evaluate at this time instead of now (ISO format, UTC if naive)",
    ),
) -> None:
    """Check baseline expiration.

    Exits with code 1 if any checked baseline has expired.
    """
    try:
        baseliner_dir = require_baseliner_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    now = at if at is not None else datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

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
    table.add_column("Window", justify="right")
    table.add_column("Status")

    any_expired = False
    for path, record in records:
        status = record.expiration.evaluate_at(now)
        any_expired = any_expired or isinstance(status, Expired)
        style = _status_style(status)
        window = f"{record.expires_in_days}d" if record.expires_in_days else "-"
        table.add_row(
            escape(path.name),
            escape(record.operation),
            window,
            f"[{style}]{describe_status(status)}[/{style}]",
        )

    console.print(table)

    if any_expired:
        console.print("[red]One or more baselines have expired.[/red]")
        raise typer.Exit(1)
