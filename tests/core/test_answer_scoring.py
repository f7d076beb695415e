"""
Tests for answer scoring across item formats.
"""

import pytest

from catexam.core.cat.answer_scoring import (
    ItemType,
    evaluate_answer,
    normalize_answer,
)
from catexam.core.cat.exceptions import InvalidInputError


class TestNormalizeAnswer:
    def test_string_becomes_single_selection(self):
        assert normalize_answer("B") == ["B"]

    def test_tuple_accepted(self):
        assert normalize_answer(("A", "C")) == ["A", "C"]

    @pytest.mark.parametrize("answer", [[], None, 3, ["A", 2]])
    def test_malformed_answers_raise(self, answer):
        with pytest.raises(InvalidInputError):
            normalize_answer(answer)


class TestMultipleChoice:
    def test_correct(self):
        result = evaluate_answer("A", ["A"], ItemType.MULTIPLE_CHOICE)
        assert result.is_correct is True
        assert result.partial_credit == 1.0

    def test_incorrect(self):
        result = evaluate_answer(["C"], ["A"], "multiple_choice")
        assert result.is_correct is False
        assert result.partial_credit == 0.0

    def test_multiple_selections_are_wrong(self):
        assert evaluate_answer(["A", "B"], ["A"], "multiple_choice").is_correct is False


class TestSelectAll:
    def test_order_ignored(self):
        result = evaluate_answer(["C", "A"], ["A", "C"], "select_all")
        assert result.is_correct is True
        assert result.partial_credit == 1.0

    def test_missing_option_gets_partial_credit(self):
        result = evaluate_answer(["A"], ["A", "B", "C", "D"], "select_all")
        assert result.is_correct is False
        assert result.partial_credit == pytest.approx(0.25)

    def test_wrong_picks_reduce_credit(self):
        result = evaluate_answer(["A", "B", "E"], ["A", "B", "C", "D"], "select_all")
        assert result.partial_credit == pytest.approx(0.25)

    def test_credit_floor_is_zero(self):
        result = evaluate_answer(["E", "F"], ["A", "B"], "select_all")
        assert result.partial_credit == 0.0

    def test_extra_option_is_incorrect(self):
        result = evaluate_answer(["A", "B", "C"], ["A", "B"], "select_all")
        assert result.is_correct is False
        assert result.partial_credit == pytest.approx(0.5)


class TestOrderedResponse:
    def test_exact_order(self):
        result = evaluate_answer(["B", "A", "C"], ["B", "A", "C"], "ordered_response")
        assert result.is_correct is True

    def test_wrong_order(self):
        result = evaluate_answer(["A", "B", "C"], ["B", "A", "C"], "ordered_response")
        assert result.is_correct is False
        assert result.partial_credit == 0.0


class TestUnknownFormat:
    def test_falls_back_to_set_equality(self):
        assert evaluate_answer(["B", "A"], ["A", "B"], "hot_spot").is_correct is True
        assert evaluate_answer(["A"], ["A", "B"], "hot_spot").is_correct is False
