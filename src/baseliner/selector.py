# Copyright (c) Syntropy Systems
"""Baseline selection.

Candidates are narrowed in two hard steps (footprint, then CONFIGURATION
covariates) and the survivors are ranked by soft-match conformance:

1. number of conforming soft covariates, higher first
2. per-covariate classification in declaration order, better first
3. most recent ``generated_at``
4. reference name, so the outcome is fully deterministic

Selection is split into two phases. ``SelectionPlan.prepare`` runs once per
operation and fixes the footprint and candidate list; ``SelectionCache``
performs the scoring once per run, when the run's covariate profile is known.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

from baseliner.errors import FootprintMismatchError, HardGateMismatchError
from baseliner.matchers import MatcherRegistry
from baseliner.models.baseline import BaselineCandidate
from baseliner.models.covariate import CovariateCategory, CovariateProfile, TextValue
from baseliner.models.declaration import CovariateDeclaration
from baseliner.models.selection import ConformanceDetail, MatchResult, SelectionResult

logger = logging.getLogger(__name__)

MISSING_VALUE = TextValue(value="<missing>")


def filter_by_footprint(
    candidates: Iterable[BaselineCandidate], footprint: str
) -> list[BaselineCandidate]:
    return [c for c in candidates if c.footprint == footprint]


def compute_conformance(
    candidate: BaselineCandidate,
    test_profile: CovariateProfile,
    declaration: CovariateDeclaration,
    matchers: MatcherRegistry,
) -> tuple[ConformanceDetail, ...]:
    """Classify every test covariate against the candidate's recorded value."""
    details: list[ConformanceDetail] = []
    for key, test_value in test_profile.items():
        category = declaration.category_for(key) or CovariateCategory.OPERATIONAL
        baseline_value = candidate.profile.get(key)
        if baseline_value is None:
            details.append(
                ConformanceDetail(
                    key=key,
                    category=category,
                    baseline_value=MISSING_VALUE,
                    test_value=test_value,
                    result=MatchResult.DOES_NOT_CONFORM,
                )
            )
            continue
        details.append(
            ConformanceDetail(
                key=key,
                category=category,
                baseline_value=baseline_value,
                test_value=test_value,
                result=matchers.match(key, baseline_value, test_value),
            )
        )
    return tuple(details)


def _passes_hard_gates(details: Sequence[ConformanceDetail]) -> bool:
    return all(d.conforms for d in details if d.category.is_hard_gate)


def filter_by_hard_gates(
    candidates: Iterable[BaselineCandidate],
    test_profile: CovariateProfile,
    declaration: CovariateDeclaration,
    matchers: MatcherRegistry | None = None,
) -> list[BaselineCandidate]:
    """Keep only candidates conforming on every CONFIGURATION covariate."""
    registry = matchers or MatcherRegistry.standard()
    return [
        c
        for c in candidates
        if _passes_hard_gates(compute_conformance(c, test_profile, declaration, registry))
    ]


@dataclass(frozen=True)
class _Scored:
    candidate: BaselineCandidate
    conformance: tuple[ConformanceDetail, ...]

    @property
    def score(self) -> int:
        return sum(1 for d in self.conformance if d.conforms and not d.category.is_hard_gate)

    @property
    def ranks(self) -> tuple[int, ...]:
        return tuple(d.result.rank for d in self.conformance)

    def sort_key(self) -> tuple[int, tuple[int, ...], float, str]:
        generated = self.candidate.generated_at
        recency = generated.timestamp() if generated is not None else float("-inf")
        return (-self.score, self.ranks, -recency, self.candidate.reference)


class BaselineSelector:
    """Ranks candidates for a resolved covariate profile."""

    def __init__(
        self,
        declaration: CovariateDeclaration,
        matchers: MatcherRegistry | None = None,
    ) -> None:
        self.declaration = declaration
        self.matchers = matchers or MatcherRegistry.standard()

    def select(
        self,
        candidates: Sequence[BaselineCandidate],
        test_profile: CovariateProfile,
    ) -> SelectionResult:
        """Pick the best candidate passing every hard gate, if any."""
        scored = [
            _Scored(c, compute_conformance(c, test_profile, self.declaration, self.matchers))
            for c in candidates
        ]
        eligible = [s for s in scored if _passes_hard_gates(s.conformance)]
        if not eligible:
            return SelectionResult(selected=None, candidate_count=len(candidates))

        eligible.sort(key=_Scored.sort_key)
        best = eligible[0]
        runner_up = eligible[1] if len(eligible) > 1 else None
        ambiguous = (
            runner_up is not None
            and runner_up.score == best.score
            and runner_up.ranks == best.ranks
        )

        return SelectionResult(
            selected=best.candidate,
            conformance=best.conformance,
            ambiguous=ambiguous,
            candidate_count=len(candidates),
            runner_up=runner_up.candidate if runner_up is not None else None,
        )

    def mismatched_hard_gates(
        self,
        candidates: Sequence[BaselineCandidate],
        test_profile: CovariateProfile,
    ) -> list[str]:
        """CONFIGURATION keys on which at least one candidate disagrees."""
        offending: set[str] = set()
        for candidate in candidates:
            for detail in compute_conformance(
                candidate, test_profile, self.declaration, self.matchers
            ):
                if detail.category.is_hard_gate and not detail.conforms:
                    offending.add(detail.key)
        return [key for key in self.declaration.keys() if key in offending]


def select_for_run(
    operation: str,
    footprint: str,
    candidates: Sequence[BaselineCandidate],
    test_profile: CovariateProfile,
    declaration: CovariateDeclaration,
    matchers: MatcherRegistry | None = None,
) -> SelectionResult:
    """Select a baseline or raise the matching selection error.

    ``candidates`` may span several footprints; only those sharing
    ``footprint`` are considered.
    """
    matching = filter_by_footprint(candidates, footprint)
    if not matching:
        available = sorted({c.footprint for c in candidates})
        raise FootprintMismatchError(operation, footprint, available)

    selector = BaselineSelector(declaration, matchers)
    result = selector.select(matching, test_profile)
    if not result.has_selection:
        raise HardGateMismatchError(
            operation,
            footprint,
            selector.mismatched_hard_gates(matching, test_profile),
            len(matching),
        )

    _log_result(operation, result)
    return result


def _log_result(operation: str, result: SelectionResult) -> None:
    selected = result.selected
    if selected is None:
        return
    logger.debug(
        "Selected baseline %s for %s (score %d of %d candidates)",
        selected.reference,
        operation,
        result.score,
        result.candidate_count,
    )
    for warning in result.warnings():
        logger.warning("%s: %s", operation, warning.message)


@dataclass(frozen=True)
class SelectionPlan:
    """Phase one: footprint and candidate list fixed before any run starts."""

    operation: str
    footprint: str
    declaration: CovariateDeclaration
    candidates: tuple[BaselineCandidate, ...]
    matchers: Optional[MatcherRegistry] = None

    @classmethod
    def prepare(
        cls,
        operation: str,
        footprint: str,
        declaration: CovariateDeclaration,
        candidates: Iterable[BaselineCandidate],
        matchers: MatcherRegistry | None = None,
    ) -> SelectionPlan:
        """Filter candidates by footprint, failing fast when none match."""
        loaded = list(candidates)
        matching = filter_by_footprint(loaded, footprint)
        if not matching:
            available = sorted({c.footprint for c in loaded})
            raise FootprintMismatchError(operation, footprint, available)
        logger.debug(
            "Prepared selection for %s: %d candidate(s)", operation, len(matching)
        )
        return cls(
            operation=operation,
            footprint=footprint,
            declaration=declaration,
            candidates=tuple(matching),
            matchers=matchers,
        )

    def select(self, test_profile: CovariateProfile) -> SelectionResult:
        """Phase two: score the candidates for one run's profile."""
        return select_for_run(
            self.operation,
            self.footprint,
            self.candidates,
            test_profile,
            self.declaration,
            self.matchers,
        )


class SelectionCache:
    """Per-run memo of phase-two results.

    Concurrent callers for the same run id get the same result object; the
    selection itself runs at most once per run id until the run is released.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results: dict[Hashable, SelectionResult] = {}

    def get_or_select(
        self,
        run_id: Hashable,
        plan: SelectionPlan,
        test_profile: CovariateProfile,
    ) -> SelectionResult:
        with self._lock:
            cached = self._results.get(run_id)
            if cached is not None:
                return cached
            result = plan.select(test_profile)
            self._results[run_id] = result
            return result

    def get(self, run_id: Hashable) -> Optional[SelectionResult]:
        with self._lock:
            return self._results.get(run_id)

    def release(self, run_id: Hashable) -> Optional[SelectionResult]:
        """Drop a finished run's result, returning it if present."""
        with self._lock:
            return self._results.pop(run_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)
