"""
Tests for standard error, confidence intervals and passing probability.
"""

import math

import pytest

from catexam.core.cat.irt import IRTParams, item_information
from catexam.core.cat.precision import (
    DEFAULT_SE,
    confidence_interval,
    passing_probability,
    standard_error,
    z_for_confidence,
)


class TestStandardError:
    def test_no_items_uses_default(self):
        assert standard_error(0.0, []) == DEFAULT_SE

    def test_custom_default(self):
        assert standard_error(0.0, [], default=0.8) == 0.8

    def test_zero_information_uses_default(self):
        # P == c far below b, so the item carries no information
        params = IRTParams(a=1.0, b=0.0, c=0.2)
        assert standard_error(-1000.0, [params]) == DEFAULT_SE

    def test_single_item(self):
        params = IRTParams(a=1.5, b=0.0, c=0.0)
        assert standard_error(0.0, [params]) == pytest.approx(1.0 / 1.5)

    def test_matches_total_information(self):
        params = [
            IRTParams(a=1.0, b=0.0, c=0.2),
            IRTParams(a=0.8, b=-1.0, c=0.2),
        ]
        total = sum(item_information(0.3, p) for p in params)
        assert standard_error(0.3, params) == pytest.approx(1.0 / math.sqrt(total))

    def test_decreases_with_more_items(self):
        params = IRTParams(a=1.0, b=0.0, c=0.2)
        se_values = [standard_error(0.0, [params] * n) for n in range(1, 6)]
        assert se_values == sorted(se_values, reverse=True)
        assert all(se > 0 for se in se_values)


class TestConfidenceInterval:
    def test_symmetric_interval(self):
        lower, upper = confidence_interval(0.5, 0.2)
        assert lower == pytest.approx(0.5 - 1.96 * 0.2)
        assert upper == pytest.approx(0.5 + 1.96 * 0.2)

    def test_custom_z(self):
        assert confidence_interval(0.0, 1.0, z=1.0) == (-1.0, 1.0)

    def test_clamped_to_bounds(self):
        assert confidence_interval(3.5, 1.0) == (pytest.approx(1.54), 4.0)

    def test_unclamped_when_bounds_none(self):
        lower, upper = confidence_interval(3.5, 1.0, bounds=None)
        assert upper == pytest.approx(5.46)
        assert lower == pytest.approx(1.54)

    def test_contains_theta(self):
        lower, upper = confidence_interval(-0.7, 0.4)
        assert lower <= -0.7 <= upper


class TestZForConfidence:
    def test_ninety_five_percent(self):
        assert z_for_confidence(0.95) == pytest.approx(1.959964, abs=1e-6)

    def test_ninety_percent(self):
        assert z_for_confidence(0.90) == pytest.approx(1.644854, abs=1e-6)

    @pytest.mark.parametrize("level", [0.0, 1.0, -0.1, 1.5])
    def test_invalid_level_raises(self, level):
        with pytest.raises(ValueError):
            z_for_confidence(level)


class TestPassingProbability:
    def test_at_threshold_is_half(self):
        assert passing_probability(0.0, 0.3, 0.0) == pytest.approx(0.5, abs=1e-6)

    def test_above_threshold(self):
        assert passing_probability(0.588, 0.3, 0.0) == pytest.approx(0.975, abs=1e-3)

    def test_below_threshold(self):
        assert passing_probability(-0.588, 0.3, 0.0) == pytest.approx(0.025, abs=1e-3)

    def test_non_zero_threshold(self):
        assert passing_probability(1.0, 0.5, 1.0) == pytest.approx(0.5, abs=1e-6)

    def test_in_unit_interval(self):
        for theta in (-4.0, -1.0, 0.0, 1.0, 4.0):
            p = passing_probability(theta, 0.25, 0.0)
            assert 0.0 <= p <= 1.0

    def test_degenerate_se(self):
        assert passing_probability(0.1, 0.0, 0.0) == 1.0
        assert passing_probability(-0.1, 0.0, 0.0) == 0.0


class TestReferenceScenarios:
    def test_passing_probability_at_threshold(self):
        assert passing_probability(0.0, 0.25, 0.0) == pytest.approx(0.5, abs=1e-6)

    def test_interval_for_theta_one(self):
        lower, upper = confidence_interval(1.0, 0.5)
        assert lower == pytest.approx(0.02)
        assert upper == pytest.approx(1.98)
