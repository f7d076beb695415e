"""
Three-parameter logistic (3PL) item response model.

Pure functions of ability (theta) and item parameters:

    P(theta) = c + (1 - c) / (1 + exp(-a * (theta - b)))
    I(theta) = a^2 * (P - c)^2 / ((1 - c)^2 * P * Q),   Q = 1 - P

Where:
    a = discrimination, b = difficulty, c = guessing (lower asymptote)

Information is defined as 0 wherever P <= c or Q <= 0.

References:
    - Birnbaum, A. (1968). Some latent trait models and their use in
      inferring an examinee's ability.
    - Abramowitz, M., & Stegun, I. A. (1964). Handbook of Mathematical
      Functions, formula 7.1.26.
"""

import math
from dataclasses import dataclass

# Admissible parameter ranges for calibrated items
DISCRIMINATION_RANGE = (0.5, 2.5)
DIFFICULTY_RANGE = (-3.0, 3.0)
GUESSING_MIN = 0.0
GUESSING_MAX = 0.35  # exclusive

# Abramowitz & Stegun 7.1.26 coefficients (|error| < 1.5e-7 for erf)
_AS_P = 0.3275911
_AS_A1 = 0.254829592
_AS_A2 = -0.284496736
_AS_A3 = 1.421413741
_AS_A4 = -1.453152027
_AS_A5 = 1.061405429


@dataclass(frozen=True)
class IRTParams:
    """Calibrated 3PL parameters for a single item.

    Attributes:
        a: Discrimination, in [0.5, 2.5].
        b: Difficulty on the logit scale, in [-3, 3].
        c: Guessing (lower asymptote), in [0, 0.35).
    """

    a: float
    b: float
    c: float = 0.0

    def __post_init__(self) -> None:
        a_min, a_max = DISCRIMINATION_RANGE
        b_min, b_max = DIFFICULTY_RANGE
        if not (a_min <= self.a <= a_max):
            raise ValueError(
                f"Discrimination must be in [{a_min}, {a_max}], got {self.a}"
            )
        if not (b_min <= self.b <= b_max):
            raise ValueError(f"Difficulty must be in [{b_min}, {b_max}], got {self.b}")
        if not (GUESSING_MIN <= self.c < GUESSING_MAX):
            raise ValueError(
                f"Guessing must be in [{GUESSING_MIN}, {GUESSING_MAX}), got {self.c}"
            )


def _logistic(x: float) -> float:
    """Numerically stable logistic function (no overflow for extreme x)."""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    exp_x = math.exp(x)
    return exp_x / (1.0 + exp_x)


def probability_correct(theta: float, a: float, b: float, c: float) -> float:
    """
    Probability of a correct response under the 3PL model.

    Args:
        theta: Ability on the logit scale.
        a: Discrimination parameter.
        b: Difficulty parameter.
        c: Guessing parameter.

    Returns:
        P(theta), in [c, 1) for the admissible parameter ranges and
        theta in [-4, 4]; non-decreasing in theta.
    """
    return c + (1.0 - c) * _logistic(a * (theta - b))


def fisher_information(theta: float, a: float, b: float, c: float) -> float:
    """
    Item information at ability theta.

    Args:
        theta: Ability on the logit scale.
        a: Discrimination parameter.
        b: Difficulty parameter.
        c: Guessing parameter.

    Returns:
        Information value (non-negative). Exactly 0 where P(theta) = c
        (or the response is certain, Q = 0).
    """
    p = probability_correct(theta, a, b, c)
    q = 1.0 - p
    if p <= c or q <= 0:
        return 0.0

    p_minus_c = p - c
    one_minus_c = 1.0 - c
    return (a * a * p_minus_c * p_minus_c) / (one_minus_c * one_minus_c * p * q)


def item_information(theta: float, params: IRTParams) -> float:
    """Convenience wrapper of :func:`fisher_information` for an IRTParams."""
    return fisher_information(theta, params.a, params.b, params.c)


def normal_cdf(z: float) -> float:
    """
    Standard normal cumulative distribution function.

    Closed-form Abramowitz & Stegun 7.1.26 approximation of erf, accurate
    to about 1e-7.
    """
    sign = -1.0 if z < 0 else 1.0
    x = abs(z) / math.sqrt(2.0)

    t = 1.0 / (1.0 + _AS_P * x)
    poly = ((((_AS_A5 * t + _AS_A4) * t + _AS_A3) * t + _AS_A2) * t + _AS_A1) * t
    erf = 1.0 - poly * math.exp(-x * x)

    return 0.5 * (1.0 + sign * erf)
