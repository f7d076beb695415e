"""
Tests for the CAT stopping rules.

Tests cover:
- Rule priority (max questions > time limit > minimum floor > confidence)
- Confident pass / fail boundaries and the SE gate
- Input validation
- Final result determination
"""

import pytest

from catexam.core.cat.stopping_rules import (
    ExamResult,
    StopReason,
    check_stopping_criteria,
    determine_result,
)

# ── Fixtures ──

SHORT_EXAM = dict(
    min_items=5,
    max_items=10,
    time_limit=600.0,
    stopping_se=0.30,
    confidence_level=0.95,
)


def _check(num_items, time_spent=0.0, se=0.5, passing_probability=0.5, **overrides):
    params = {**SHORT_EXAM, **overrides}
    return check_stopping_criteria(
        num_items=num_items,
        time_spent=time_spent,
        se=se,
        passing_probability=passing_probability,
        **params,
    )


class TestRulePriority:
    def test_max_questions_stops(self):
        decision = _check(10)
        assert decision.should_stop is True
        assert decision.reason == StopReason.MAX_QUESTIONS

    def test_max_questions_beats_time_limit(self):
        decision = _check(10, time_spent=10_000.0)
        assert decision.reason == StopReason.MAX_QUESTIONS

    def test_max_questions_beats_confidence(self):
        decision = _check(10, se=0.1, passing_probability=0.999)
        assert decision.reason == StopReason.MAX_QUESTIONS

    def test_time_limit_stops_below_minimum(self):
        decision = _check(2, time_spent=600.0)
        assert decision.should_stop is True
        assert decision.reason == StopReason.TIME_LIMIT

    def test_time_limit_beats_confidence(self):
        decision = _check(6, time_spent=601.0, se=0.1, passing_probability=0.99)
        assert decision.reason == StopReason.TIME_LIMIT

    def test_minimum_floor_blocks_confident_stop(self):
        decision = _check(4, se=0.1, passing_probability=0.999)
        assert decision.should_stop is False
        assert decision.reason == StopReason.CONTINUE

    def test_continue_when_nothing_fires(self):
        decision = _check(6, se=0.5, passing_probability=0.6)
        assert decision.should_stop is False
        assert decision.reason == StopReason.CONTINUE


class TestConfidenceRule:
    def test_confident_pass(self):
        decision = _check(5, se=0.30, passing_probability=0.95)
        assert decision.should_stop is True
        assert decision.reason == StopReason.PASS_CONFIDENT

    def test_confident_fail(self):
        decision = _check(5, se=0.25, passing_probability=0.05)
        assert decision.should_stop is True
        assert decision.reason == StopReason.FAIL_CONFIDENT

    def test_se_gate(self):
        decision = _check(5, se=0.31, passing_probability=0.999)
        assert decision.should_stop is False

    def test_undecided_probability_continues(self):
        decision = _check(5, se=0.2, passing_probability=0.9)
        assert decision.should_stop is False

    def test_custom_confidence_level(self):
        decision = _check(5, se=0.2, passing_probability=0.9, confidence_level=0.9)
        assert decision.reason == StopReason.PASS_CONFIDENT


class TestDecisionDetails:
    def test_details_populated(self):
        decision = _check(5, time_spent=12.5, se=0.28, passing_probability=0.7)
        details = decision.details
        assert details["num_items"] == 5
        assert details["time_spent"] == 12.5
        assert details["se"] == 0.28
        assert details["passing_probability"] == 0.7
        assert details["min_items_met"] is True
        assert details["at_max_items"] is False
        assert details["se_target_met"] is True

    def test_defaults_follow_nclex_format(self):
        assert check_stopping_criteria(59, 0.0, 0.1, 0.99).should_stop is False
        assert check_stopping_criteria(60, 0.0, 0.1, 0.99).should_stop is True
        decision = check_stopping_criteria(145, 0.0, 0.9, 0.5)
        assert decision.reason == StopReason.MAX_QUESTIONS


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"num_items": -1},
            {"time_spent": -0.5},
            {"se": -0.1},
            {"passing_probability": 1.5},
            {"passing_probability": -0.01},
        ],
    )
    def test_invalid_inputs_raise(self, kwargs):
        values = {"num_items": 3, "time_spent": 0.0, "se": 0.5, "passing_probability": 0.5}
        values.update(kwargs)
        with pytest.raises(ValueError):
            check_stopping_criteria(**values, **SHORT_EXAM)


class TestDetermineResult:
    def test_pass_at_boundary(self):
        assert determine_result(0.5, has_responses=True) == ExamResult.PASS

    def test_fail_below_boundary(self):
        assert determine_result(0.49, has_responses=True) == ExamResult.FAIL

    def test_undetermined_without_responses(self):
        assert determine_result(0.99, has_responses=False) == ExamResult.UNDETERMINED
