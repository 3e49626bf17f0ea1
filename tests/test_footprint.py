# Copyright (c) Syntropy Systems
"""Tests for footprint computation and baseline naming."""

import pytest

from baseliner.declaration import build_declaration
from baseliner.footprint import compute_footprint
from baseliner.models.covariate import CovariateProfile, TextValue
from baseliner.naming import baseline_filename, parse_baseline_filename


class TestFootprint:
    """Tests for compute_footprint."""

    def test_deterministic(self):
        """Test that identical inputs hash identically."""
        first = compute_footprint("summarize", {"temperature": 0.2}, ["region", "day_of_week"])
        second = compute_footprint("summarize", {"temperature": 0.2}, ["region", "day_of_week"])

        assert first == second
        assert len(first) == 64

    def test_parameter_order_irrelevant(self):
        """Test that parameter insertion order does not matter."""
        first = compute_footprint("op", {"a": 1, "b": 2}, ["region"])
        second = compute_footprint("op", {"b": 2, "a": 1}, ["region"])

        assert first == second

    def test_covariate_order_significant(self):
        """Test that permuting covariate declaration order changes the hash."""
        first = compute_footprint("op", {}, ["region", "timezone"])
        second = compute_footprint("op", {}, ["timezone", "region"])

        assert first != second

    def test_covariate_set_significant(self):
        """Test that adding a covariate changes the hash."""
        assert compute_footprint("op", {}, ["region"]) != compute_footprint(
            "op", {}, ["region", "timezone"]
        )

    def test_parameters_significant(self):
        """Test that parameter values change the hash."""
        assert compute_footprint("op", {"a": 1}) != compute_footprint("op", {"a": 2})

    def test_accepts_declaration(self):
        """Test that a declaration hashes the same as its key list."""
        declaration = build_declaration(
            [{"kind": "region", "groups": [["FR"]]}, {"kind": "timezone"}]
        )

        assert compute_footprint("op", None, declaration) == compute_footprint(
            "op", None, ["region", "timezone"]
        )


class TestBaselineNaming:
    """Tests for baseline filenames."""

    def test_filename_layout(self):
        """Test name, footprint prefix and one hash per covariate."""
        profile = CovariateProfile(
            [("region", TextValue(value="EU")), ("timezone", TextValue(value="UTC"))]
        )

        name = baseline_filename("Shopping Cart/checkout", "abcdef123456", profile)

        parts = name.removesuffix(".yaml").split("-")
        assert parts[0] == "Shopping_Cart_checkout"
        assert parts[1] == "abcd"
        assert len(parts) == 4
        assert all(len(p) == 4 for p in parts[1:])

    def test_without_profile(self):
        """Test naming with no covariates."""
        assert baseline_filename("op", "abcdef") == "op-abcd.yaml"

    def test_different_values_different_names(self):
        """Test that distinct covariate values yield distinct names."""
        eu = CovariateProfile([("region", TextValue(value="EU"))])
        us = CovariateProfile([("region", TextValue(value="US"))])

        assert baseline_filename("op", "abcdef", eu) != baseline_filename("op", "abcdef", us)

    def test_hyphen_in_operation_sanitized(self):
        """Test that hyphens cannot break the layout."""
        name = baseline_filename("my-op", "abcdef")

        assert parse_baseline_filename(name).operation == "my_op"

    def test_parse(self):
        """Test parsing a generated filename."""
        parsed = parse_baseline_filename("checkout-abcd-1234-5678.yaml")

        assert parsed.operation == "checkout"
        assert parsed.footprint_prefix == "abcd"
        assert parsed.covariate_hashes == ("1234", "5678")
        assert parsed.has_covariates

    def test_parse_yml(self):
        """Test parsing a .yml filename without covariates."""
        parsed = parse_baseline_filename("checkout-abcd.yml")

        assert parsed.footprint_prefix == "abcd"
        assert not parsed.has_covariates

    def test_parse_invalid(self):
        """Test that a name without footprint is rejected."""
        with pytest.raises(ValueError, match="Invalid baseline filename"):
            parse_baseline_filename("checkout.yaml")
