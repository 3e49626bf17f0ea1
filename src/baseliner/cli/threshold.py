# Copyright (c) Syntropy Systems
"""baseliner threshold command."""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from baseliner.config import find_baseliner_dir, load_config
from baseliner.errors import DegenerateThresholdInputError
from baseliner.threshold import (
    SIZING_NOTE,
    derive_threshold,
    has_compliance_context,
    is_undersized,
)

console = Console()


def threshold(
    samples: int = typer.Option(
        ...,
        "--samples",
        help="Baseline sample count",
    ),
    successes: int = typer.Option(
        ...,
        "--successes",
        help="Baseline success count",
    ),
    test_samples: int = typer.Option(
        ...,
        "--test-samples", "-n",
        help="Verification sample count",
    ),
    confidence: Optional[float] = typer.Option(
        None,
        "--confidence", "-c",
        min=0.0,
        max=1.0,
        help="One-sided confidence level (default: from config, else 0.95)",
    ),
    target: Optional[float] = typer.Option(
        None,
        "--target",
        help="Prescribed pass rate to check the sample size against",
    ),
    origin: Optional[str] = typer.Option(
        None,
        "--origin",
        help="Origin of the target (SLA, SLO, POLICY)",
    ),
    contract: Optional[str] = typer.Option(
        None,
        "--contract",
        help="Contract reference for the target",
    ),
) -> None:
    """Derive the minimum pass rate for a verification run.

    Uses the baseline's observed rate and a one-sided lower confidence bound
    sized for the verification sample count.
    """
    if confidence is None:
        confidence = load_config(find_baseliner_dir()).confidence
    if not 0.0 < confidence < 1.0:
        console.print("[red]Error:[/red] Confidence must be strictly between 0 and 1")
        raise typer.Exit(1)

    try:
        result = derive_threshold(samples, successes, test_samples, confidence)
    except DegenerateThresholdInputError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    console.print(f"\n[bold]Threshold[/bold] {result.min_pass_rate:.4f}")
    console.print(f"  [dim]method:[/dim] {result.method.value}")
    console.print(
        f"  [dim]observed rate:[/dim] {result.observed_rate:.4f} "
        f"({successes}/{samples})"
    )
    console.print(f"  [dim]confidence:[/dim] {result.confidence:.0%} (one-sided)")
    console.print(f"  [dim]z:[/dim] {result.z:.3f}")
    console.print(f"  [dim]standard error:[/dim] {result.standard_error:.4f}")
    console.print(
        f"  [dim]required:[/dim] {result.required_successes()}/{test_samples} successes"
    )

    if (
        target is not None
        and has_compliance_context(origin, contract)
        and is_undersized(test_samples, target)
    ):
        console.print(f"[yellow]Note:[/yellow] {SIZING_NOTE}")
