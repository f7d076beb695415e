"""
Stopping rules for Computerized Adaptive Testing (CAT).

Implements the pass/fail termination chain evaluated after every answer.
Hard ceilings (question count, time budget) bound the worst-case exam
length; the minimum-question floor guarantees measurement reliability before
any early exit; the confidence rule ends the exam as soon as the pass/fail
decision is statistically settled.

Stopping Rules (strict priority order):
    1. Maximum questions: stop at max_questions ("max_questions")
    2. Time limit: stop once time_spent >= time_limit ("time_limit")
    3. Minimum questions: continue while below min_questions ("continue")
    4. Confidence: with SE <= stopping_se, stop when the passing probability
       is >= confidence_level ("pass_confident") or <= 1 - confidence_level
       ("fail_confident")
    5. Otherwise continue ("continue")

The confidence rule uses the SE + passing-probability formulation. The
interval-based formulation (95% CI entirely above/below the threshold) is
not evaluated.

References:
    - Kingsbury, G. G., & Weiss, D. J. (1983). A comparison of IRT-based
      adaptive mastery testing and a sequential mastery testing procedure.
    - National Council of State Boards of Nursing. NCLEX 95% confidence
      interval rule.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

logger = logging.getLogger(__name__)

MIN_QUESTIONS = 60
MAX_QUESTIONS = 145
TIME_LIMIT_SECONDS = 18000  # 5 hours
STOPPING_SE = 0.30
CONFIDENCE_LEVEL = 0.95

# Result decision boundary on the passing probability
PASS_DECISION_BOUNDARY = 0.5


class StopReason(str, Enum):
    """Why a session stopped (or the rule chain said to continue)."""

    CONTINUE = "continue"
    MAX_QUESTIONS = "max_questions"
    TIME_LIMIT = "time_limit"
    PASS_CONFIDENT = "pass_confident"
    FAIL_CONFIDENT = "fail_confident"
    USER_ENDED = "user_ended"
    NO_ITEMS_AVAILABLE = "no_items_available"


class ExamResult(str, Enum):
    """Final outcome of a session."""

    PASS = "pass"
    FAIL = "fail"
    UNDETERMINED = "undetermined"


@dataclass
class StoppingDecision:
    """
    Result of evaluating the stopping rules.

    Attributes:
        should_stop: Whether the exam should terminate.
        reason: The rule that decided (StopReason.CONTINUE when continuing).
        details: Diagnostic values (counts, SE, probability, thresholds).
    """

    should_stop: bool
    reason: StopReason
    details: Dict[str, Any]


def check_stopping_criteria(
    num_items: int,
    time_spent: float,
    se: float,
    passing_probability: float,
    min_items: int = MIN_QUESTIONS,
    max_items: int = MAX_QUESTIONS,
    time_limit: float = TIME_LIMIT_SECONDS,
    stopping_se: float = STOPPING_SE,
    confidence_level: float = CONFIDENCE_LEVEL,
) -> StoppingDecision:
    """
    Evaluate the stopping rules in priority order.

    Args:
        num_items: Number of items answered so far.
        time_spent: Total seconds spent so far (caller-supplied).
        se: Current standard error of the ability estimate.
        passing_probability: Current probability of ability above threshold.
        min_items: Floor below which the exam cannot stop on confidence.
        max_items: Hard ceiling on the number of items.
        time_limit: Hard ceiling on elapsed seconds.
        stopping_se: SE required before the confidence rule may fire.
        confidence_level: Probability required for a confident decision.

    Returns:
        StoppingDecision with the first rule that decided.

    Raises:
        ValueError: If num_items, time_spent or se is negative, or the
            passing probability is outside [0, 1].
    """
    if num_items < 0:
        raise ValueError(f"Number of items must be non-negative, got {num_items}")
    if time_spent < 0:
        raise ValueError(f"Time spent must be non-negative, got {time_spent}")
    if se < 0:
        raise ValueError(f"Standard error must be non-negative, got {se}")
    if not 0.0 <= passing_probability <= 1.0:
        raise ValueError(
            f"Passing probability must be in [0, 1], got {passing_probability}"
        )

    details: Dict[str, Any] = {
        "num_items": num_items,
        "time_spent": time_spent,
        "se": se,
        "passing_probability": passing_probability,
        "min_items_met": num_items >= min_items,
        "at_max_items": num_items >= max_items,
        "se_target_met": se <= stopping_se,
    }

    # Rule 1: Maximum items, overrides everything below
    if num_items >= max_items:
        logger.info(f"Stopping: reached maximum items ({num_items}/{max_items})")
        return StoppingDecision(True, StopReason.MAX_QUESTIONS, details)

    # Rule 2: Time budget
    if time_spent >= time_limit:
        logger.info(
            f"Stopping: time limit reached ({time_spent:.0f}s/{time_limit:.0f}s) "
            f"after {num_items} items"
        )
        return StoppingDecision(True, StopReason.TIME_LIMIT, details)

    # Rule 3: Minimum items floor
    if num_items < min_items:
        logger.debug(
            f"Continuing: {num_items}/{min_items} items administered (below minimum)"
        )
        return StoppingDecision(False, StopReason.CONTINUE, details)

    # Rule 4: Confidence rule
    if se <= stopping_se:
        if passing_probability >= confidence_level:
            logger.info(
                f"Stopping: confident pass (P={passing_probability:.4f}, "
                f"SE={se:.4f}) after {num_items} items"
            )
            return StoppingDecision(True, StopReason.PASS_CONFIDENT, details)
        if passing_probability <= 1.0 - confidence_level:
            logger.info(
                f"Stopping: confident fail (P={passing_probability:.4f}, "
                f"SE={se:.4f}) after {num_items} items"
            )
            return StoppingDecision(True, StopReason.FAIL_CONFIDENT, details)

    logger.debug(
        f"Continuing: SE={se:.4f} (target={stopping_se:.4f}), "
        f"P(pass)={passing_probability:.4f}, items={num_items}"
    )
    return StoppingDecision(False, StopReason.CONTINUE, details)


def determine_result(passing_probability: float, has_responses: bool) -> ExamResult:
    """
    Final pass/fail decision for a stopped session.

    A session stopped before any response exists is undetermined.
    """
    if not has_responses:
        return ExamResult.UNDETERMINED
    if passing_probability >= PASS_DECISION_BOUNDARY:
        return ExamResult.PASS
    return ExamResult.FAIL
