# Copyright (c) Syntropy Systems
"""Conformance classifications and selection outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from typing_extensions import TypeAlias

if TYPE_CHECKING:
    from .baseline import BaselineCandidate
    from .covariate import CovariateCategory, TextValue, TimeWindowValue


class MatchResult(Enum):
    """How well a baseline value conforms to the current one.

    Members are declared best first; ``rank`` is used for ordering.
    """

    CONFORMS = "CONFORMS"
    PARTIALLY_CONFORMS = "PARTIALLY_CONFORMS"
    DOES_NOT_CONFORM = "DOES_NOT_CONFORM"

    @property
    def rank(self) -> int:
        return list(MatchResult).index(self)


@dataclass(frozen=True)
class ConformanceDetail:
    """Conformance of one covariate between a baseline and the current run."""

    key: str
    category: CovariateCategory
    baseline_value: TextValue | TimeWindowValue
    test_value: TextValue | TimeWindowValue
    result: MatchResult

    @property
    def conforms(self) -> bool:
        return self.result is MatchResult.CONFORMS


@dataclass(frozen=True)
class SoftMatchNonConformance:
    """Non-fatal: a soft-match covariate differs from the baseline."""

    key: str
    category: CovariateCategory
    baseline_value: str
    test_value: str

    @property
    def message(self) -> str:
        return (
            f"{self.key}: baseline={self.baseline_value}, test={self.test_value}"
        )


@dataclass(frozen=True)
class AmbiguousSelection:
    """Non-fatal: the top candidates were indistinguishable by conformance."""

    chosen: str
    tied_with: str

    @property
    def message(self) -> str:
        return (
            f"Multiple equally-suitable baselines existed ({self.chosen}, "
            f"{self.tied_with}); the most recent was chosen."
        )


SelectionWarning: TypeAlias = Union[SoftMatchNonConformance, AmbiguousSelection]


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of ranking the candidates for one verification run."""

    selected: Optional[BaselineCandidate]
    conformance: tuple[ConformanceDetail, ...] = ()
    ambiguous: bool = False
    candidate_count: int = 0
    runner_up: Optional[BaselineCandidate] = field(default=None, compare=False)

    @property
    def has_selection(self) -> bool:
        return self.selected is not None

    @property
    def non_conforming(self) -> list[ConformanceDetail]:
        return [d for d in self.conformance if not d.conforms]

    @property
    def has_non_conformance(self) -> bool:
        return bool(self.non_conforming)

    @property
    def score(self) -> int:
        return sum(
            1 for d in self.conformance if d.conforms and not d.category.is_hard_gate
        )

    def warnings(self) -> list[SelectionWarning]:
        """Non-fatal annotations to surface next to the eventual verdict."""
        found: list[SelectionWarning] = [
            SoftMatchNonConformance(
                key=d.key,
                category=d.category,
                baseline_value=d.baseline_value.canonical(),
                test_value=d.test_value.canonical(),
            )
            for d in self.non_conforming
            if not d.category.is_hard_gate
        ]
        if self.ambiguous and self.selected is not None and self.runner_up is not None:
            found.append(
                AmbiguousSelection(
                    chosen=self.selected.reference,
                    tied_with=self.runner_up.reference,
                )
            )
        return found
