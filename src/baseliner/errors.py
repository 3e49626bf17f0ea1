# Copyright (c) Syntropy Systems
"""Exceptions raised by baseliner."""

from __future__ import annotations

from collections.abc import Sequence


class BaselinerError(Exception):
    """Base class for all baseliner errors."""


class DeclarationValidationError(BaselinerError):
    """A covariate declaration violates a partition rule.

    Raised at declaration-extraction time, never during resolution.
    """


class BaselineSelectionError(BaselinerError):
    """No usable baseline exists for a verification run."""

    def __init__(self, message: str, operation: str, footprint: str) -> None:
        super().__init__(message)
        self.operation = operation
        self.footprint = footprint


class FootprintMismatchError(BaselineSelectionError):
    """No baseline shares the current footprint."""

    def __init__(
        self,
        operation: str,
        footprint: str,
        available_footprints: Sequence[str] = (),
    ) -> None:
        self.available_footprints = list(available_footprints)
        super().__init__(
            _footprint_message(operation, footprint, self.available_footprints),
            operation,
            footprint,
        )


class HardGateMismatchError(BaselineSelectionError):
    """Baselines share the footprint but none matches every CONFIGURATION covariate."""

    def __init__(
        self,
        operation: str,
        footprint: str,
        mismatched_keys: Sequence[str],
        candidate_count: int,
    ) -> None:
        self.mismatched_keys = list(mismatched_keys)
        self.candidate_count = candidate_count
        keys = ", ".join(self.mismatched_keys) or "(none)"
        message = (
            f"{candidate_count} baseline(s) for '{operation}' share footprint "
            f"'{footprint[:8]}', but none matches the current configuration "
            f"({keys}). Measure a new baseline for the current configuration, "
            "or explore configurations to compare them."
        )
        super().__init__(message, operation, footprint)


class DegenerateThresholdInputError(BaselinerError):
    """Threshold derivation was asked for with no samples."""


class BaselineLoadError(BaselinerError):
    """A baseline file could not be read or parsed."""


def _footprint_message(
    operation: str, footprint: str, available: Sequence[str]
) -> str:
    parts = [f"No baseline matches footprint '{footprint[:8]}' for '{operation}'."]
    if available:
        shown = ", ".join(fp[:8] for fp in available)
        parts.append(f"Available footprints: {shown}.")
    else:
        parts.append("No baselines found for this operation.")
    parts.append(
        "The covariate declaration or functional parameters may have changed. "
        "Generate a baseline for the current declaration."
    )
    return " ".join(parts)
