# Copyright (c) Syntropy Systems
"""Tests for threshold derivation."""

import pytest

from baseliner.errors import DegenerateThresholdInputError
from baseliner.models.threshold import ThresholdMethod
from baseliner.threshold import (
    choose_method,
    derive_threshold,
    has_compliance_context,
    is_undersized,
    normal_lower_bound,
    one_sided_z,
    standard_error,
    wilson_lower_bound,
)


class TestOneSidedZ:
    """Tests for one-sided critical values."""

    @pytest.mark.parametrize(
        ("confidence", "expected"),
        [(0.90, 1.282), (0.95, 1.645), (0.99, 2.326)],
    )
    def test_values(self, confidence, expected):
        """Test the usual one-sided z values."""
        assert one_sided_z(confidence) == pytest.approx(expected, abs=1e-3)

    @pytest.mark.parametrize("confidence", [0.0, 1.0, -0.5, 1.5])
    def test_out_of_range(self, confidence):
        """Test that confidence outside (0, 1) is rejected."""
        with pytest.raises(ValueError, match="Confidence"):
            one_sided_z(confidence)


class TestBounds:
    """Tests for the lower bound formulas."""

    def test_worked_example_normal(self):
        """Test p=0.951 with 100 verification samples at 95%."""
        z = one_sided_z(0.95)

        assert standard_error(0.951, 100) == pytest.approx(0.0216, abs=1e-4)
        assert normal_lower_bound(0.951, 100, z) == pytest.approx(0.9155, abs=1e-4)

    def test_worked_example_wilson(self):
        """Test that Wilson is close to the normal bound for the same inputs."""
        z = one_sided_z(0.95)

        wilson = wilson_lower_bound(0.951, 100, z)

        assert wilson == pytest.approx(0.9021, abs=1e-4)
        assert abs(wilson - normal_lower_bound(0.951, 100, z)) < 0.02

    @pytest.mark.parametrize("n", [1, 2, 5, 30, 1000])
    @pytest.mark.parametrize("p", [0.0, 0.01, 0.5, 0.99, 1.0])
    def test_wilson_within_unit_interval(self, n, p):
        """Test that the Wilson bound never leaves [0, 1]."""
        bound = wilson_lower_bound(p, n, one_sided_z(0.99))

        assert 0.0 <= bound <= 1.0

    def test_normal_clamped(self):
        """Test that the normal approximation is clamped at zero."""
        z = one_sided_z(0.95)

        assert 0.05 - z * standard_error(0.05, 5) < 0.0
        assert normal_lower_bound(0.05, 5, z) == 0.0


class TestMethodSelection:
    """Tests for automatic method selection."""

    def test_small_sample_uses_wilson(self):
        """Test that 8 verification samples always use Wilson."""
        assert choose_method(8, 0.5) is ThresholdMethod.WILSON_SCORE

    def test_near_boundary_uses_wilson(self):
        """Test that p=0.95 with 100 samples uses Wilson."""
        assert choose_method(100, 0.95) is ThresholdMethod.WILSON_SCORE

    def test_low_rate_uses_wilson(self):
        """Test that p below 0.1 uses Wilson."""
        assert choose_method(100, 0.05) is ThresholdMethod.WILSON_SCORE

    def test_moderate_rate_uses_normal(self):
        """Test that p=0.5 with 100 samples uses the normal approximation."""
        assert choose_method(100, 0.5) is ThresholdMethod.NORMAL_APPROXIMATION


class TestDeriveThreshold:
    """Tests for derive_threshold."""

    def test_worked_example(self):
        """Test the full derivation for p=0.951 and 100 samples."""
        threshold = derive_threshold(1000, 951, 100, 0.95)

        assert threshold.observed_rate == pytest.approx(0.951)
        assert threshold.method is ThresholdMethod.WILSON_SCORE
        assert threshold.min_pass_rate == pytest.approx(0.9021, abs=1e-4)
        assert threshold.z == pytest.approx(1.645, abs=1e-3)
        assert threshold.standard_error == pytest.approx(0.0216, abs=1e-4)
        assert threshold.required_successes() == 91
        assert threshold.passes(91)
        assert not threshold.passes(90)

    def test_normal_method_metadata(self):
        """Test that moderate rates report the normal approximation."""
        threshold = derive_threshold(1000, 500, 100)

        assert threshold.method is ThresholdMethod.NORMAL_APPROXIMATION
        assert threshold.confidence == 0.95
        assert threshold.min_pass_rate == pytest.approx(0.5 - 1.645 * 0.05, abs=1e-3)

    def test_threshold_below_observed_rate(self):
        """Test that the threshold never exceeds the observed rate."""
        threshold = derive_threshold(200, 180, 10)

        assert threshold.min_pass_rate < threshold.observed_rate

    @pytest.mark.parametrize(
        ("samples", "successes", "test_samples"),
        [(0, 0, 100), (100, 90, 0), (100, 101, 10), (100, -1, 10)],
    )
    def test_degenerate_inputs(self, samples, successes, test_samples):
        """Test that degenerate inputs fail fast."""
        with pytest.raises(DegenerateThresholdInputError):
            derive_threshold(samples, successes, test_samples)


class TestComplianceSizing:
    """Tests for compliance evidence checks."""

    def test_undersized(self):
        """Test that 100 flawless samples cannot demonstrate 99%."""
        assert is_undersized(100, 0.99)

    def test_sufficient(self):
        """Test that 10000 flawless samples can demonstrate 99%."""
        assert not is_undersized(10000, 0.99)

    @pytest.mark.parametrize(("samples", "target"), [(0, 0.9), (100, 0.0), (100, 1.0)])
    def test_out_of_range_never_undersized(self, samples, target):
        """Test that invalid inputs are never reported as undersized."""
        assert not is_undersized(samples, target)

    def test_compliance_context(self):
        """Test which origins count as compliance context."""
        assert has_compliance_context("sla")
        assert has_compliance_context("POLICY")
        assert has_compliance_context(None, "CONTRACT-42")
        assert not has_compliance_context("EMPIRICAL")
        assert not has_compliance_context(None, "")
