"""
Tests for MLE ability estimation.

Tests cover:
- Empty, all-correct and all-incorrect histories
- Mixed patterns converging to the analytic solution
- Bound validation and clamping
- Order independence
- Monotonicity across the non-mixed caps
"""

import math

import pytest

from catexam.core.cat.ability_estimation import (
    ALL_CORRECT_THETA,
    ALL_INCORRECT_THETA,
    estimate_ability_mle,
)
from catexam.core.cat.irt import IRTParams

# ── Fixtures ──

RASCH_LIKE = IRTParams(a=1.0, b=0.0, c=0.0)


class TestNonMixedPatterns:
    def test_empty_history_returns_zero(self):
        assert estimate_ability_mle([]) == 0.0

    def test_all_correct_capped_at_three(self):
        responses = [(IRTParams(a=1.0, b=b, c=0.2), True) for b in (-1.0, 0.0, 1.0)]
        assert estimate_ability_mle(responses) == ALL_CORRECT_THETA == 3.0

    def test_all_incorrect_capped_at_minus_three(self):
        responses = [(IRTParams(a=1.0, b=b, c=0.2), False) for b in (-1.0, 0.0, 1.0)]
        assert estimate_ability_mle(responses) == ALL_INCORRECT_THETA == -3.0

    def test_single_correct_response(self):
        assert estimate_ability_mle([(RASCH_LIKE, True)]) == 3.0

    def test_caps_respect_narrow_bounds(self):
        assert estimate_ability_mle([(RASCH_LIKE, True)], theta_min=-2, theta_max=2) == 2
        assert (
            estimate_ability_mle([(RASCH_LIKE, False)], theta_min=-2, theta_max=2)
            == -2
        )


class TestMixedPatterns:
    def test_one_correct_one_incorrect_is_zero(self):
        responses = [(RASCH_LIKE, True), (RASCH_LIKE, False)]
        assert estimate_ability_mle(responses) == pytest.approx(0.0, abs=1e-9)

    def test_three_of_four_matches_log_odds(self):
        # With identical a=1, b=0, c=0 items the MLE solves P = 3/4
        responses = [(RASCH_LIKE, True)] * 3 + [(RASCH_LIKE, False)]
        assert estimate_ability_mle(responses) == pytest.approx(math.log(3), abs=5e-3)

    def test_one_of_four_is_symmetric(self):
        responses = [(RASCH_LIKE, True)] + [(RASCH_LIKE, False)] * 3
        assert estimate_ability_mle(responses) == pytest.approx(-math.log(3), abs=5e-3)

    def test_result_within_bounds(self):
        responses = [
            (IRTParams(a=2.5, b=-3.0, c=0.0), True),
            (IRTParams(a=2.5, b=-2.9, c=0.0), True),
            (IRTParams(a=0.5, b=3.0, c=0.3), False),
        ]
        theta = estimate_ability_mle(responses, theta_min=-1.0, theta_max=1.0)
        assert -1.0 <= theta <= 1.0

    def test_order_independent(self):
        responses = [
            (IRTParams(a=1.2, b=0.5, c=0.2), True),
            (IRTParams(a=0.9, b=-0.5, c=0.1), False),
            (IRTParams(a=1.5, b=1.0, c=0.25), True),
            (IRTParams(a=1.0, b=0.0, c=0.2), False),
        ]
        forward = estimate_ability_mle(responses)
        backward = estimate_ability_mle(list(reversed(responses)))
        assert forward == pytest.approx(backward)

    def test_more_correct_answers_raise_estimate(self):
        weaker = [(RASCH_LIKE, True)] * 2 + [(RASCH_LIKE, False)] * 2
        stronger = [(RASCH_LIKE, True)] * 3 + [(RASCH_LIKE, False)]
        assert estimate_ability_mle(stronger) > estimate_ability_mle(weaker)


class TestBoundValidation:
    @pytest.mark.parametrize("theta_min,theta_max", [(1.0, 1.0), (2.0, -2.0)])
    def test_invalid_bounds_raise(self, theta_min, theta_max):
        with pytest.raises(ValueError):
            estimate_ability_mle(
                [(RASCH_LIKE, True)], theta_min=theta_min, theta_max=theta_max
            )

    def test_empty_history_clamped_into_bounds(self):
        assert estimate_ability_mle([], theta_min=0.5, theta_max=2.0) == 0.5


class TestMonotonicity:
    @pytest.mark.parametrize("extra_b", [-2.0, 0.0, 1.5])
    def test_adding_correct_response_never_decreases_theta(self, extra_b):
        base = [(RASCH_LIKE, True), (RASCH_LIKE, False), (RASCH_LIKE, False)]
        extended = base + [(IRTParams(a=1.0, b=extra_b, c=0.0), True)]
        assert estimate_ability_mle(extended) >= estimate_ability_mle(base) - 1e-3

    def test_first_correct_after_all_incorrect_never_decreases_theta(self):
        base = [
            (IRTParams(a=1.0, b=b, c=0.25), False)
            for b in (-2.0, -1.5, -1.0, -0.5, 0.0)
        ]
        extended = base + [(IRTParams(a=1.0, b=2.0, c=0.25), True)]
        before = estimate_ability_mle(base)
        after = estimate_ability_mle(extended)
        assert before == ALL_INCORRECT_THETA
        assert after >= before

    def test_first_incorrect_after_all_correct_never_increases_theta(self):
        base = [
            (IRTParams(a=1.0, b=b, c=0.25), True)
            for b in (0.0, 0.5, 1.0, 1.5, 2.0)
        ]
        extended = base + [(IRTParams(a=1.0, b=-2.0, c=0.25), False)]
        before = estimate_ability_mle(base)
        after = estimate_ability_mle(extended)
        assert before == ALL_CORRECT_THETA
        assert after <= before

    def test_mixed_patterns_stay_within_caps(self):
        responses = [
            (IRTParams(a=1.0, b=-2.0, c=0.3), False),
            (IRTParams(a=1.0, b=-1.0, c=0.3), False),
            (IRTParams(a=1.0, b=2.5, c=0.3), True),
        ]
        theta = estimate_ability_mle(responses)
        assert ALL_INCORRECT_THETA <= theta <= ALL_CORRECT_THETA
