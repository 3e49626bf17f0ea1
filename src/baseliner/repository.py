# Copyright (c) Syntropy Systems
"""YAML baseline store.

One file per baseline under a root directory. Records are only ever added;
existing files are never rewritten.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import cast

import yaml
from pydantic import ValidationError

from baseliner.errors import BaselineLoadError
from baseliner.models.baseline import BaselineCandidate, BaselineRecord
from baseliner.naming import BASELINE_SUFFIXES, baseline_filename

logger = logging.getLogger(__name__)


def read_record(path: Path) -> BaselineRecord:
    """Parse one baseline file.

    Raises:
        BaselineLoadError: if the file is unreadable or malformed.

    """
    try:
        with path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})
        return BaselineRecord.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        msg = f"Failed to load baseline {path}: {e}"
        raise BaselineLoadError(msg) from e


class BaselineRepository:
    """Baselines stored as YAML files in ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _paths(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return sorted(
            p for p in self.root.iterdir() if p.is_file() and p.suffix in BASELINE_SUFFIXES
        )

    def load_all(self) -> list[tuple[Path, BaselineRecord]]:
        """Every readable record; unreadable files are logged and skipped."""
        loaded: list[tuple[Path, BaselineRecord]] = []
        for path in self._paths():
            try:
                loaded.append((path, read_record(path)))
            except BaselineLoadError as e:
                logger.warning("Skipping baseline file: %s", e)
        return loaded

    def find_all_candidates(self, operation: str) -> list[BaselineCandidate]:
        """Candidates for an operation across every footprint."""
        return [
            record.to_candidate(path.name)
            for path, record in self.load_all()
            if record.operation == operation
        ]

    def find_candidates(self, operation: str, footprint: str) -> list[BaselineCandidate]:
        return [
            c for c in self.find_all_candidates(operation) if c.footprint == footprint
        ]

    def available_footprints(self, operation: str) -> list[str]:
        return sorted({c.footprint for c in self.find_all_candidates(operation)})

    def operations(self) -> list[str]:
        return sorted({record.operation for _, record in self.load_all()})

    def write(self, record: BaselineRecord) -> Path:
        """Store a new record and return its path.

        Raises:
            FileExistsError: if a baseline with the same name already exists.

        """
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / baseline_filename(
            record.operation, record.footprint, record.profile
        )
        if path.exists():
            msg = f"Baseline already exists: {path}"
            raise FileExistsError(msg)

        data = record.model_dump(mode="json", exclude_none=True)
        with path.open("x") as f:
            yaml.safe_dump(data, f, sort_keys=False)

        logger.debug("Wrote baseline %s", path.name)
        return path
