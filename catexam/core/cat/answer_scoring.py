"""
Answer scoring for the supported item formats.

Answers are lists of option ids. A single string is accepted as a
one-element selection.

    multiple_choice   exactly one selection equal to the keyed option
    select_all        set equality with the key (order ignored)
    ordered_response  positional equality with the key
    anything else     symmetric set equality

Select-all items also report a partial-credit score,
max(0, (hits - wrong picks) / len(key)). It is informational only:
correctness, and therefore ability estimation, stays dichotomous.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Union

from catexam.core.cat.exceptions import InvalidInputError

Answer = Union[str, Sequence[str]]


class ItemType(str, Enum):
    """Item formats with a dedicated scoring rule."""

    MULTIPLE_CHOICE = "multiple_choice"
    SELECT_ALL = "select_all"
    ORDERED_RESPONSE = "ordered_response"


@dataclass(frozen=True)
class AnswerEvaluation:
    is_correct: bool
    partial_credit: float


def normalize_answer(answer: Answer) -> List[str]:
    """
    Convert a submitted answer to a list of option ids.

    Raises:
        InvalidInputError: If the selection is empty or contains anything
            other than strings.
    """
    if isinstance(answer, str):
        selection = [answer]
    elif isinstance(answer, (list, tuple)):
        selection = list(answer)
    else:
        raise InvalidInputError(
            "Answer must be an option id or a list of option ids",
            {"answer_type": type(answer).__name__},
        )

    if not selection:
        raise InvalidInputError("Answer must select at least one option")
    if not all(isinstance(option, str) for option in selection):
        raise InvalidInputError("Answer options must be strings")
    return selection


def evaluate_answer(
    answer: Answer,
    correct_answers: Sequence[str],
    item_type: str,
) -> AnswerEvaluation:
    """
    Score an answer against an item's key.

    Args:
        answer: Submitted option id(s).
        correct_answers: Keyed option ids, in order for ordered items.
        item_type: Item format (see ItemType); unknown formats use set equality.

    Returns:
        AnswerEvaluation with dichotomous correctness and partial credit.

    Raises:
        InvalidInputError: If the answer is malformed.
    """
    selection = normalize_answer(answer)
    key = list(correct_answers)

    if item_type == ItemType.MULTIPLE_CHOICE:
        is_correct = len(selection) == 1 and bool(key) and selection[0] == key[0]
    elif item_type == ItemType.SELECT_ALL:
        is_correct = set(selection) == set(key)
    elif item_type == ItemType.ORDERED_RESPONSE:
        is_correct = selection == key
    else:
        is_correct = set(selection) == set(key)

    if item_type == ItemType.SELECT_ALL and not is_correct and key:
        hits = sum(1 for option in set(selection) if option in key)
        wrong = sum(1 for option in set(selection) if option not in key)
        partial_credit = max(0.0, (hits - wrong) / len(set(key)))
    else:
        partial_credit = 1.0 if is_correct else 0.0

    return AnswerEvaluation(is_correct=is_correct, partial_credit=partial_credit)
