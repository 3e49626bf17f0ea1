# Copyright (c) Syntropy Systems
"""Configuration management for baseliner."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, cast

import yaml

CONFIG_DIR_NAME = ".baseliner"


@dataclass
class BaselinerConfig:
    """Configuration for baseliner."""

    # One-sided confidence level for derived thresholds
    confidence: float = 0.95

    # Baseline directory, relative to the project root
    baselines_dir: str = "baselines"

    # IANA timezone for temporal covariates; None means the host zone
    system_timezone: Optional[str] = None


def find_baseliner_dir(start_path: Path | None = None) -> Path | None:
    """Find the nearest .baseliner directory by walking up from start_path.

    Returns None if no .baseliner directory is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        candidate = current / CONFIG_DIR_NAME
        if candidate.is_dir():
            return candidate
        current = current.parent

    # Check root
    candidate = current / CONFIG_DIR_NAME
    if candidate.is_dir():
        return candidate

    return None


def get_global_config_dir() -> Path:
    """Get the global baseliner config directory (~/.baseliner)."""
    return Path.home() / CONFIG_DIR_NAME


def load_config(baseliner_dir: Path | None = None) -> BaselinerConfig:
    """Load configuration from .baseliner/config.yaml or defaults.

    Looks for config in:
    1. Provided baseliner_dir
    2. Nearest .baseliner directory walking up
    3. ~/.baseliner/config.yaml
    4. Defaults
    """
    config = BaselinerConfig()

    config_path = None

    if baseliner_dir is not None:
        config_path = baseliner_dir / "config.yaml"
    else:
        found_dir = find_baseliner_dir()
        if found_dir is not None:
            config_path = found_dir / "config.yaml"
        else:
            global_config = get_global_config_dir() / "config.yaml"
            if global_config.exists():
                config_path = global_config

    if config_path is not None and config_path.exists():
        with config_path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})

        confidence = data.get("confidence")
        if isinstance(confidence, (int, float)) and 0.0 < confidence < 1.0:
            config.confidence = float(confidence)
        baselines_dir = data.get("baselines_dir")
        if isinstance(baselines_dir, str) and baselines_dir:
            config.baselines_dir = baselines_dir
        system_timezone = data.get("system_timezone")
        if isinstance(system_timezone, str) and system_timezone:
            config.system_timezone = system_timezone

    return config


def get_baselines_dir(
    baseliner_dir: Path | None = None, config: BaselinerConfig | None = None
) -> Path:
    """Get the baseline directory for the current project.

    Relative ``baselines_dir`` values are resolved against the project root
    (the parent of .baseliner), or the working directory without a project.
    """
    if baseliner_dir is None:
        baseliner_dir = find_baseliner_dir()
    if config is None:
        config = load_config(baseliner_dir)

    path = Path(config.baselines_dir).expanduser()
    if path.is_absolute():
        return path
    root = baseliner_dir.parent if baseliner_dir is not None else Path.cwd()
    return root / path


def require_baseliner_dir() -> Path:
    """Get baseliner directory or raise an error if not found."""
    baseliner_dir = find_baseliner_dir()
    if baseliner_dir is None:
        msg = "No .baseliner directory found. Run 'baseliner init' first."
        raise RuntimeError(msg)
    return baseliner_dir
