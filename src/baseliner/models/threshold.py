# Copyright (c) Syntropy Systems
"""Derived regression thresholds."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from .base import FrozenModel


class ThresholdMethod(str, Enum):
    """Lower-bound formula used to derive a threshold."""

    NORMAL_APPROXIMATION = "NORMAL_APPROXIMATION"
    WILSON_SCORE = "WILSON_SCORE"


class RegressionThreshold(FrozenModel):
    """Minimum pass rate for a verification run, with its derivation."""

    experimental_samples: int = Field(gt=0)
    experimental_successes: int = Field(ge=0)
    observed_rate: float = Field(ge=0.0, le=1.0)
    test_samples: int = Field(gt=0)
    confidence: float = Field(gt=0.0, lt=1.0)
    min_pass_rate: float = Field(ge=0.0, le=1.0)
    method: ThresholdMethod
    z: float
    standard_error: float = Field(ge=0.0)

    def required_successes(self) -> int:
        """Smallest success count in ``test_samples`` that meets the threshold."""
        needed = self.min_pass_rate * self.test_samples
        whole = int(needed)
        # Guard against float noise just above an integer.
        if needed - whole > 1e-9:
            whole += 1
        return min(whole, self.test_samples)

    def passes(self, successes: int) -> bool:
        return successes / self.test_samples >= self.min_pass_rate - 1e-12
