# Copyright (c) Syntropy Systems
"""Threshold derivation from a baseline's observed success rate.

A baseline measured over many samples gives an observed rate ``p``. A
verification run with far fewer samples will fluctuate around ``p``, so it is
held to a one-sided lower confidence bound computed for the *verification*
sample size rather than to ``p`` itself.
"""

from __future__ import annotations

import logging
import math
from statistics import NormalDist
from typing import Optional

from baseliner.errors import DegenerateThresholdInputError
from baseliner.models.baseline import BaselineCandidate
from baseliner.models.threshold import RegressionThreshold, ThresholdMethod

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.95

# Below this many verification samples Wilson is always used
SMALL_SAMPLE_LIMIT = 20
EXTREME_RATE_LOW = 0.1
EXTREME_RATE_HIGH = 0.9

DEFAULT_COMPLIANCE_ALPHA = 0.001
SIZING_NOTE = "sample not sized for compliance verification"
COMPLIANCE_ORIGINS = frozenset({"SLA", "SLO", "POLICY"})


def one_sided_z(confidence: float) -> float:
    """Critical value z with P(Z <= z) = confidence.

    >>> round(one_sided_z(0.95), 3)
    1.645
    """
    if not 0.0 < confidence < 1.0:
        msg = f"Confidence must be strictly between 0 and 1, got: {confidence}"
        raise ValueError(msg)
    return NormalDist().inv_cdf(confidence)


def standard_error(p: float, n: int) -> float:
    return math.sqrt(p * (1.0 - p) / n)


def normal_lower_bound(p: float, n: int, z: float) -> float:
    """``p - z * SE``, clamped to [0, 1]."""
    bound = p - z * standard_error(p, n)
    return min(1.0, max(0.0, bound))


def wilson_lower_bound(p: float, n: int, z: float) -> float:
    """One-sided Wilson score lower bound. Stays in [0, 1] without clamping."""
    z2 = z * z
    center = p + z2 / (2 * n)
    margin = z * math.sqrt(p * (1.0 - p) / n + z2 / (4 * n * n))
    bound = (center - margin) / (1.0 + z2 / n)
    # Float noise can push p == 0 a hair below zero.
    return max(0.0, bound)


def choose_method(test_samples: int, observed_rate: float) -> ThresholdMethod:
    """Wilson for small samples or extreme rates, else normal approximation."""
    if test_samples < SMALL_SAMPLE_LIMIT:
        return ThresholdMethod.WILSON_SCORE
    if observed_rate < EXTREME_RATE_LOW or observed_rate > EXTREME_RATE_HIGH:
        return ThresholdMethod.WILSON_SCORE
    return ThresholdMethod.NORMAL_APPROXIMATION


def derive_threshold(
    experimental_samples: int,
    experimental_successes: int,
    test_samples: int,
    confidence: float = DEFAULT_CONFIDENCE,
) -> RegressionThreshold:
    """Minimum pass rate for ``test_samples`` verification samples.

    Raises:
        DegenerateThresholdInputError: if either sample count is not
            positive, or the success count is outside [0, samples].

    """
    if experimental_samples <= 0:
        msg = (
            "Cannot derive a threshold from a baseline with no samples "
            f"(experimental samples: {experimental_samples})"
        )
        raise DegenerateThresholdInputError(msg)
    if test_samples <= 0:
        msg = f"Test sample count must be positive, got: {test_samples}"
        raise DegenerateThresholdInputError(msg)
    if not 0 <= experimental_successes <= experimental_samples:
        msg = (
            f"Experimental successes ({experimental_successes}) must be between "
            f"0 and experimental samples ({experimental_samples})"
        )
        raise DegenerateThresholdInputError(msg)

    p = experimental_successes / experimental_samples
    z = one_sided_z(confidence)
    method = choose_method(test_samples, p)

    if method is ThresholdMethod.WILSON_SCORE:
        bound = wilson_lower_bound(p, test_samples, z)
    else:
        bound = normal_lower_bound(p, test_samples, z)

    threshold = RegressionThreshold(
        experimental_samples=experimental_samples,
        experimental_successes=experimental_successes,
        observed_rate=p,
        test_samples=test_samples,
        confidence=confidence,
        min_pass_rate=bound,
        method=method,
        z=z,
        standard_error=standard_error(p, test_samples),
    )
    logger.debug(
        "Derived threshold %.4f (%s, z=%.3f) from p=%.4f, n_test=%d",
        bound,
        method.value,
        z,
        p,
        test_samples,
    )
    return threshold


def threshold_for_baseline(
    baseline: BaselineCandidate,
    test_samples: int,
    confidence: float = DEFAULT_CONFIDENCE,
) -> RegressionThreshold:
    return derive_threshold(baseline.samples, baseline.successes, test_samples, confidence)


def is_undersized(
    samples: int, target: float, alpha: float = DEFAULT_COMPLIANCE_ALPHA
) -> bool:
    """Whether even a flawless run of ``samples`` cannot demonstrate ``target``.

    Uses the Wilson lower bound of a run with zero failures at confidence
    ``1 - alpha``. Targets outside (0, 1) are never undersized.
    """
    if samples <= 0 or not 0.0 < target < 1.0:
        return False
    z = one_sided_z(1.0 - alpha)
    return wilson_lower_bound(1.0, samples, z) < target


def has_compliance_context(
    origin: Optional[str] = None, contract_ref: Optional[str] = None
) -> bool:
    """True for thresholds prescribed by an SLA, SLO, policy or contract."""
    if origin is not None and origin.strip().upper() in COMPLIANCE_ORIGINS:
        return True
    return bool(contract_ref)
