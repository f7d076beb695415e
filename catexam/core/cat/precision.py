"""
Measurement precision for adaptive test sessions.

    SE(theta) = 1 / sqrt(sum_i I_i(theta))
    CI        = [theta - z * SE, theta + z * SE]      (clamped to theta bounds)
    P(pass)   = Phi((theta - threshold) / SE)

SE falls back to a conservative ceiling (1.0) when the administered items
carry no information at theta, so it is always positive.
"""

import math
from typing import Iterable, Optional, Tuple

from scipy.stats import norm

from catexam.core.cat.irt import IRTParams, item_information, normal_cdf

# SE reported when total information is zero (equals the prior SD)
DEFAULT_SE = 1.0

# Two-sided 95% critical value
DEFAULT_Z = 1.96

DEFAULT_THETA_BOUNDS = (-4.0, 4.0)


def standard_error(
    theta: float,
    params: Iterable[IRTParams],
    default: float = DEFAULT_SE,
) -> float:
    """
    Standard error of the ability estimate from the administered items.

    Args:
        theta: Current ability estimate.
        params: Parameters of every administered item.
        default: Value returned when total information is zero.

    Returns:
        Positive standard error.
    """
    total_information = sum(item_information(theta, p) for p in params)
    if total_information > 0:
        return 1.0 / math.sqrt(total_information)
    return default


def confidence_interval(
    theta: float,
    se: float,
    z: float = DEFAULT_Z,
    bounds: Optional[Tuple[float, float]] = DEFAULT_THETA_BOUNDS,
) -> Tuple[float, float]:
    """
    Confidence interval around theta.

    Args:
        theta: Ability estimate.
        se: Standard error of the estimate.
        z: Critical value (1.96 for 95%).
        bounds: Clamp limits; None returns the unclamped interval.

    Returns:
        (lower, upper) tuple.
    """
    lower = theta - z * se
    upper = theta + z * se
    if bounds is not None:
        lo, hi = bounds
        lower = max(lo, min(hi, lower))
        upper = max(lo, min(hi, upper))
    return (lower, upper)


def z_for_confidence(confidence_level: float) -> float:
    """
    Two-sided critical value for a confidence level (0.95 -> 1.96).

    Raises:
        ValueError: If confidence_level is not in (0, 1).
    """
    if not 0.0 < confidence_level < 1.0:
        raise ValueError(
            f"Confidence level must be between 0 and 1, got {confidence_level}"
        )
    alpha = 1.0 - confidence_level
    return float(norm.ppf(1.0 - alpha / 2.0))


def passing_probability(theta: float, se: float, threshold: float) -> float:
    """
    Probability that the true ability lies above the passing threshold.

    A degenerate (non-positive) SE collapses to a hard comparison.
    """
    if se <= 0:
        return 1.0 if theta >= threshold else 0.0
    return normal_cdf((theta - threshold) / se)
