# Copyright (c) Syntropy Systems
"""baseliner init command."""

from pathlib import Path

import typer
import yaml
from rich.console import Console

from baseliner.config import CONFIG_DIR_NAME

console = Console()

EXAMPLE_DECLARATION = {
    "covariates": [
        {"kind": "day_of_week", "groups": [{"days": ["SATURDAY", "SUNDAY"]}]},
        {"kind": "time_of_day", "periods": []},
        {"kind": "timezone"},
    ]
}


def init(
    path: Path = typer.Argument(
        Path(),
        help="Directory to initialize (default: current directory)",
    ),
) -> None:
    """Initialize a new baseliner project.

    Creates a .baseliner directory with configuration, an example covariate
    declaration and an empty baseline directory.
    """
    target = path.resolve()
    baseliner_dir = target / CONFIG_DIR_NAME

    if baseliner_dir.exists():
        console.print(f"[yellow]Already initialized:[/yellow] {baseliner_dir}")
        return

    baseliner_dir.mkdir(parents=True)

    # Create default config
    config = {
        "confidence": 0.95,
        "baselines_dir": "baselines",
    }

    config_path = baseliner_dir / "config.yaml"
    with config_path.open("w") as f:
        yaml.dump(config, f, default_flow_style=False)

    declaration_path = baseliner_dir / "covariates.yaml"
    with declaration_path.open("w") as f:
        yaml.dump(EXAMPLE_DECLARATION, f, default_flow_style=False, sort_keys=False)

    baselines_dir = target / "baselines"
    baselines_dir.mkdir(exist_ok=True)

    console.print(f"[green]Initialized baseliner project:[/green] {baseliner_dir}")
    console.print(f"  [dim]config:[/dim] {config_path}")
    console.print(f"  [dim]covariates:[/dim] {declaration_path}")
    console.print(f"  [dim]baselines:[/dim] {baselines_dir}")
