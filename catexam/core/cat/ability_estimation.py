"""
Maximum likelihood (MLE) ability estimation for Computerized Adaptive Testing.

Estimates ability (theta) from a response history under the 3PL model using
a stabilized Newton-Raphson iteration. For each response with u in {0, 1}
and P* = (P - c) / (1 - c):

    L1 += a * (u - P) * P* / P
    L2 += a^2 * P* * [(u - P) / P - P* * (u*Q + (1 - u)*P) / P^2]

    theta <- theta + L1 / |L2|

Dividing by |L2| instead of L2 keeps every step in the ascent direction of
the likelihood. The estimate is clamped to the theta bounds after every
update.

MLE diverges for all-correct and all-incorrect patterns, so those are capped
explicitly at +3 / -3 before iterating. Mixed patterns are searched within
the same caps.

References:
    - Lord, F. M. (1980). Applications of Item Response Theory to Practical
      Testing Problems. Chapter 5.
    - Baker, F. B., & Kim, S.-H. (2004). Item Response Theory: Parameter
      Estimation Techniques (2nd ed.).
"""

import logging
from typing import Sequence, Tuple

from catexam.core.cat.irt import IRTParams, probability_correct

logger = logging.getLogger(__name__)

# Iteration controls
MAX_ITERATIONS = 50
STEP_TOLERANCE = 0.001
# |L2| below this means the likelihood is flat around theta
FLAT_LIKELIHOOD_EPSILON = 1e-10

# Caps for non-mixed response patterns (MLE undefined)
ALL_CORRECT_THETA = 3.0
ALL_INCORRECT_THETA = -3.0

THETA_MIN = -4.0
THETA_MAX = 4.0


def estimate_ability_mle(
    responses: Sequence[Tuple[IRTParams, bool]],
    theta_min: float = THETA_MIN,
    theta_max: float = THETA_MAX,
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = STEP_TOLERANCE,
) -> float:
    """
    Estimate ability by maximum likelihood.

    Args:
        responses: (params, is_correct) pairs. Order is immaterial.
        theta_min: Lower bound for the estimate.
        theta_max: Upper bound for the estimate.
        max_iterations: Newton-Raphson iteration cap.
        tolerance: Convergence threshold on |step|.

    Returns:
        Ability estimate in [theta_min, theta_max]. 0.0 for an empty history,
        +3.0 when every response is correct, -3.0 when every response is
        incorrect (each clamped to the bounds). Mixed patterns fall within
        [-3.0, +3.0].

    Raises:
        ValueError: If theta_min >= theta_max.
    """
    if theta_min >= theta_max:
        raise ValueError(
            f"theta_min must be below theta_max, got [{theta_min}, {theta_max}]"
        )

    if not responses:
        return _clamp(0.0, theta_min, theta_max)

    if all(is_correct for _, is_correct in responses):
        return _clamp(ALL_CORRECT_THETA, theta_min, theta_max)
    if not any(is_correct for _, is_correct in responses):
        return _clamp(ALL_INCORRECT_THETA, theta_min, theta_max)

    # Mixed patterns stay within the non-mixed caps so the estimate is
    # monotone in the number of correct answers
    lower, upper = _mixed_pattern_bounds(theta_min, theta_max)
    theta = _clamp(0.0, lower, upper)
    iterations = 0
    converged = False

    for iterations in range(1, max_iterations + 1):
        l1, l2 = _likelihood_derivatives(theta, responses)

        if abs(l2) < FLAT_LIKELIHOOD_EPSILON:
            logger.debug(f"MLE stopped on flat likelihood at theta={theta:.4f}")
            break

        step = l1 / abs(l2)
        theta = _clamp(theta + step, lower, upper)

        if abs(step) < tolerance:
            converged = True
            break

    if not converged:
        logger.debug(
            f"MLE finished without step convergence after {iterations} iterations "
            f"(theta={theta:.4f}, n={len(responses)})"
        )

    return theta


def _likelihood_derivatives(
    theta: float,
    responses: Sequence[Tuple[IRTParams, bool]],
) -> Tuple[float, float]:
    """
    First and second derivatives of the 3PL log-likelihood at theta.

    Responses where P <= 0 or Q <= 0 contribute nothing.
    """
    l1 = 0.0
    l2 = 0.0
    for params, is_correct in responses:
        a, c = params.a, params.c
        p = probability_correct(theta, params.a, params.b, params.c)
        q = 1.0 - p
        if p <= 0 or q <= 0:
            continue

        p_star = (p - c) / (1.0 - c)
        u = 1.0 if is_correct else 0.0

        l1 += a * (u - p) * p_star / p
        l2 += (
            a
            * a
            * p_star
            * ((u - p) / p - p_star * (u * q + (1.0 - u) * p) / (p * p))
        )

    return l1, l2


def _mixed_pattern_bounds(theta_min: float, theta_max: float) -> Tuple[float, float]:
    lower = max(theta_min, ALL_INCORRECT_THETA)
    upper = min(theta_max, ALL_CORRECT_THETA)
    if lower >= upper:
        return theta_min, theta_max
    return lower, upper


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
