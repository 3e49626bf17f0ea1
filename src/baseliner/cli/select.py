# Copyright (c) Syntropy Systems
"""baseliner select command."""
from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from baseliner.config import get_baselines_dir, load_config, require_baseliner_dir
from baseliner.declaration import load_declaration
from baseliner.errors import (
    BaselinerError,
    FootprintMismatchError,
    HardGateMismatchError,
)
from baseliner.expiration import describe_status
from baseliner.footprint import compute_footprint
from baseliner.models.declaration import CovariateDeclaration
from baseliner.models.expiration import requires_warning
from baseliner.models.selection import MatchResult
from baseliner.repository import BaselineRepository
from baseliner.resolvers import ResolutionContext, detect_system_timezone, resolve_profile
from baseliner.selector import select_for_run
from baseliner.threshold import threshold_for_baseline

console = Console()

_RESULT_STYLE = {
    MatchResult.CONFORMS: "green",
    MatchResult.PARTIALLY_CONFORMS: "yellow",
    MatchResult.DOES_NOT_CONFORM: "red",
}


def parse_assignments(values: list[str], what: str) -> dict[str, str]:
    """Parse repeated ``name=value`` options."""
    parsed: dict[str, str] = {}
    for item in values:
        if "=" not in item:
            msg = f"Invalid {what} '{item}', expected name=value"
            raise typer.BadParameter(msg)
        name, value = item.split("=", 1)
        parsed[name.strip()] = value.strip()
    return parsed


def _as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def select(
    operation: str = typer.Argument(
        ...,
        help="Operation to select a baseline for",
    ),
    declaration_path: Optional[Path] = typer.Option(
        None,
        "--declaration", "-d",
        help="Covariate declaration file (default: .baseliner/covariates.yaml)",
    ),
    param: list[str] = typer.Option(
        [],
        "--param", "-p",
        help="Functional parameter as name=value (repeatable)",
    ),
    set_: list[str] = typer.Option(
        [],
        "--set", "-s",
        help="Covariate value override as key=value (repeatable)",
    ),
    at: Optional[datetime] = typer.Option(
        None,
        "--at",
        help="Resolve as if it were this time (ISO format, UTC if naive)",
    ),
    start: Optional[datetime] = typer.Option(
        None,
        "--start",
        help="Run interval start (ISO format, UTC if naive)",
    ),
    end: Optional[datetime] = typer.Option(
        None,
        "--end",
        help="Run interval end (ISO format, UTC if naive)",
    ),
    test_samples: Optional[int] = typer.Option(
        None,
        "--test-samples", "-n",
        min=1,
        help="Also derive the threshold for this many verification samples",
    ),
) -> None:
    """Select the best-matching baseline for the current conditions.

    Resolves the declared covariates, filters baselines by footprint and
    configuration, and ranks the rest by conformance.
    """
    try:
        baseliner_dir = require_baseliner_dir()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    config = load_config(baseliner_dir)

    if declaration_path is None:
        declaration_path = baseliner_dir / "covariates.yaml"
    try:
        if declaration_path.exists():
            declaration = load_declaration(declaration_path)
        else:
            declaration = CovariateDeclaration.empty()
    except BaselinerError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    context = ResolutionContext(
        now=_as_utc(at) or datetime.now(timezone.utc),
        run_start=_as_utc(start),
        run_end=_as_utc(end),
        system_timezone=config.system_timezone or detect_system_timezone(),
        overrides=parse_assignments(set_, "override"),
        environ=dict(os.environ),
    )
    profile = resolve_profile(declaration, context)
    footprint = compute_footprint(operation, parse_assignments(param, "parameter"), declaration)

    repository = BaselineRepository(get_baselines_dir(baseliner_dir, config))

    try:
        result = select_for_run(
            operation,
            footprint,
            repository.find_all_candidates(operation),
            profile,
            declaration,
        )
    except FootprintMismatchError as e:
        console.print(f"[red]Footprint mismatch:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e
    except HardGateMismatchError as e:
        console.print(f"[red]Configuration mismatch:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    selected = result.selected
    if selected is None:
        console.print("[red]Error:[/red] No baseline selected")
        raise typer.Exit(1)

    console.print(f"\n[bold]Selected baseline[/bold] {escape(selected.reference)}")
    console.print(f"  [dim]footprint:[/dim] {footprint[:8]}")
    console.print(f"  [dim]candidates:[/dim] {result.candidate_count}")
    console.print(f"  [dim]score:[/dim] {result.score}")
    console.print(
        f"  [dim]observed rate:[/dim] {selected.observed_rate:.4f} "
        f"({selected.successes}/{selected.samples})"
    )

    if result.conformance:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Covariate")
        table.add_column("Category", style="dim")
        table.add_column("Baseline")
        table.add_column("Current")
        table.add_column("Result")
        for detail in result.conformance:
            style = _RESULT_STYLE[detail.result]
            table.add_row(
                escape(detail.key),
                detail.category.value,
                escape(detail.baseline_value.canonical()),
                escape(detail.test_value.canonical()),
                f"[{style}]{detail.result.value}[/{style}]",
            )
        console.print(table)

    for warning in result.warnings():
        console.print(f"[yellow]Warning:[/yellow] {escape(warning.message)}")

    status = selected.expiration.evaluate_at(context.now)
    if requires_warning(status):
        console.print(f"[yellow]Expiration:[/yellow] {describe_status(status)}")

    if test_samples is not None:
        try:
            threshold = threshold_for_baseline(selected, test_samples, config.confidence)
        except BaselinerError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(1) from e
        console.print(
            f"\n[bold]Threshold[/bold] {threshold.min_pass_rate:.4f} "
            f"({threshold.required_successes()}/{test_samples} successes, "
            f"{threshold.method.value})"
        )
