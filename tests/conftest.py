# Copyright (c) Syntropy Systems
"""Pytest fixtures for baseliner tests."""

import os
import tempfile
from collections.abc import Generator
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

# Store original cwd at module load time
_original_cwd = Path.cwd()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def baseliner_project(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary baseliner project directory."""
    baseliner_dir = temp_dir / ".baseliner"
    baseliner_dir.mkdir()
    (temp_dir / "baselines").mkdir()

    config_path = baseliner_dir / "config.yaml"
    with config_path.open("w") as f:
        yaml.dump(
            {"confidence": 0.95, "baselines_dir": "baselines", "system_timezone": "UTC"},
            f,
        )

    # Change to temp directory
    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def saturday_noon() -> datetime:
    """A fixed Saturday, 12:00 UTC."""
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def tuesday_morning() -> datetime:
    """A fixed Tuesday, 09:30 UTC."""
    return datetime(2024, 6, 11, 9, 30, tzinfo=timezone.utc)
