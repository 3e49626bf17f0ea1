# Copyright (c) Syntropy Systems
"""Host-facing verification workflow.

A ``BaselineVerifier`` is built once per operation. Construction loads the
candidate baselines and fixes the footprint; ``prepare_run`` then resolves the
run's covariates, selects a baseline and derives the threshold and
expiration status the sampling loop will be judged against. The result is
held per run id until ``finish_run``.

Example:
    verifier = BaselineVerifier(repository, declaration, operation="summarize")
    setup = verifier.prepare_run("run-1", ResolutionContext.current(), 50)
    ...run 50 samples...
    passed = setup.passes(successes)
    verifier.finish_run("run-1")

"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Mapping
from dataclasses import dataclass
from typing import Optional

from baseliner.expiration import evaluate_expiration
from baseliner.footprint import compute_footprint
from baseliner.matchers import MatcherRegistry
from baseliner.models.baseline import BaselineCandidate
from baseliner.models.covariate import CovariateProfile
from baseliner.models.declaration import CovariateDeclaration
from baseliner.models.expiration import (
    Expired,
    ExpiringImminently,
    ExpiringSoon,
    NoExpiration,
    Valid,
)
from baseliner.models.selection import SelectionResult, SelectionWarning
from baseliner.models.threshold import RegressionThreshold
from baseliner.repository import BaselineRepository
from baseliner.resolvers import ResolutionContext, ResolverRegistry, resolve_profile
from baseliner.selector import SelectionPlan
from baseliner.threshold import (
    DEFAULT_CONFIDENCE,
    SIZING_NOTE,
    has_compliance_context,
    is_undersized,
    threshold_for_baseline,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationSetup:
    """Everything fixed before sampling starts for one run."""

    run_id: Hashable
    operation: str
    footprint: str
    profile: CovariateProfile
    baseline: BaselineCandidate
    selection: SelectionResult
    threshold: RegressionThreshold
    expiration: NoExpiration | Valid | ExpiringSoon | ExpiringImminently | Expired
    sizing_note: Optional[str] = None

    @property
    def warnings(self) -> list[SelectionWarning]:
        return self.selection.warnings()

    def passes(self, successes: int) -> bool:
        return self.threshold.passes(successes)


class BaselineVerifier:
    """Selects baselines and thresholds for the runs of one operation."""

    def __init__(
        self,
        repository: BaselineRepository,
        declaration: CovariateDeclaration,
        *,
        operation: str,
        parameters: Mapping[str, object] | None = None,
        confidence: float = DEFAULT_CONFIDENCE,
        resolvers: ResolverRegistry | None = None,
        matchers: MatcherRegistry | None = None,
    ) -> None:
        self.declaration = declaration
        self.operation = operation
        self.confidence = confidence
        self.resolvers = resolvers or ResolverRegistry.for_declaration(declaration)
        self.footprint = compute_footprint(operation, parameters, declaration)
        self.plan = SelectionPlan.prepare(
            operation,
            self.footprint,
            declaration,
            repository.find_all_candidates(operation),
            matchers,
        )
        self._lock = threading.Lock()
        self._runs: dict[Hashable, VerificationSetup] = {}

    def resolve(self, context: ResolutionContext) -> CovariateProfile:
        return resolve_profile(self.declaration, context, self.resolvers)

    def prepare_run(
        self,
        run_id: Hashable,
        context: ResolutionContext,
        test_samples: int,
        *,
        compliance_target: Optional[float] = None,
        origin: Optional[str] = None,
        contract_ref: Optional[str] = None,
    ) -> VerificationSetup:
        """Resolve, select and derive the threshold for one run.

        The first call for a run id builds the setup; later calls return that
        same setup until ``finish_run`` releases it. The profile, selection,
        threshold and expiration status therefore stay fixed for the run.

        Raises:
            FootprintMismatchError: no baseline shares the footprint.
            HardGateMismatchError: no baseline matches the configuration.
            DegenerateThresholdInputError: the selected baseline or the
                requested run has no samples.

        """
        with self._lock:
            setup = self._runs.get(run_id)
            if setup is not None:
                return setup
            setup = self._build_setup(
                run_id, context, test_samples, compliance_target, origin, contract_ref
            )
            self._runs[run_id] = setup
            return setup

    def finish_run(self, run_id: Hashable) -> Optional[VerificationSetup]:
        """Release a run's setup. Returns it, or None if the run was unknown."""
        with self._lock:
            return self._runs.pop(run_id, None)

    def setup_for(self, run_id: Hashable) -> Optional[VerificationSetup]:
        with self._lock:
            return self._runs.get(run_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)

    def _build_setup(
        self,
        run_id: Hashable,
        context: ResolutionContext,
        test_samples: int,
        compliance_target: Optional[float],
        origin: Optional[str],
        contract_ref: Optional[str],
    ) -> VerificationSetup:
        profile = self.resolve(context)
        selection = self.plan.select(profile)
        selected = selection.selected
        if selected is None:
            msg = f"No baseline selected for run {run_id!r}"
            raise RuntimeError(msg)

        threshold = threshold_for_baseline(selected, test_samples, self.confidence)
        expiration = evaluate_expiration(selected, context.now)

        sizing_note = None
        if (
            compliance_target is not None
            and has_compliance_context(origin, contract_ref)
            and is_undersized(test_samples, compliance_target)
        ):
            sizing_note = SIZING_NOTE
            logger.warning(
                "%s: %d samples cannot demonstrate %.4f (%s)",
                self.operation,
                test_samples,
                compliance_target,
                SIZING_NOTE,
            )

        return VerificationSetup(
            run_id=run_id,
            operation=self.operation,
            footprint=self.footprint,
            profile=profile,
            baseline=selected,
            selection=selection,
            threshold=threshold,
            expiration=expiration,
            sizing_note=sizing_note,
        )
