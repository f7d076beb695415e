"""
Category balancing for Computerized Adaptive Testing.

Keeps the administered items spread across the exam's content categories
(e.g. the NCLEX client-needs categories) without giving up much precision.

Two mechanisms:
    Share override: a category whose share of the answered items is below
    ``category_share_threshold`` (or below its configured minimum count) is
    under-represented. Item selection may prefer its best item over the most
    informative one when the information loss is small.

    Caps: a category that has reached its configured maximum count is
    excluded from the eligible pool, unless that would empty the pool.

References:
    - Kingsbury, G. G., & Zara, A. R. (1989). Procedures for selecting items
      for computerized adaptive tests.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

logger = logging.getLogger(__name__)

# A category below this share of answered items is under-represented.
CATEGORY_SHARE_THRESHOLD = 0.15

# The preferred category item must carry this fraction of the best information.
CATEGORY_INFORMATION_TOLERANCE = 0.70

# Number of top-information candidates scanned for an under-represented category.
CATEGORY_BALANCE_WINDOW = 10


@dataclass
class CategoryTally:
    """Correct/total counts for one category within a session."""

    correct: int = 0
    total: int = 0

    def record(self, is_correct: bool) -> None:
        self.total += 1
        if is_correct:
            self.correct += 1

    @property
    def percentage(self) -> float:
        """Percent correct (0-100); 0 for an empty tally."""
        if self.total == 0:
            return 0.0
        return self.correct / self.total * 100.0


def category_counts(tally: Mapping[str, CategoryTally]) -> Dict[str, int]:
    """Number of answered items per category."""
    return {category: t.total for category, t in tally.items()}


def category_share(
    category: str,
    tally: Mapping[str, CategoryTally],
    answered_count: int,
) -> float:
    """Share of the answered items that came from ``category``."""
    if answered_count <= 0:
        return 0.0
    entry = tally.get(category)
    return (entry.total if entry else 0) / answered_count


def is_underrepresented(
    category: str,
    tally: Mapping[str, CategoryTally],
    answered_count: int,
    share_threshold: float = CATEGORY_SHARE_THRESHOLD,
    distribution: Optional[Mapping[str, Any]] = None,
) -> bool:
    """
    Whether ``category`` should be boosted by item selection.

    A category is under-represented when its share of the answered items is
    below ``share_threshold``, or when it has fewer items than the ``min``
    configured for it in ``distribution``.

    Args:
        category: Category tag of a candidate item.
        tally: Per-category counts of the session so far.
        answered_count: Total answered items in the session.
        share_threshold: Share below which a category is boosted.
        distribution: Optional per-category bounds (objects with ``min`` and
            ``max`` attributes).

    Returns:
        True if the category is under-represented.
    """
    if category_share(category, tally, answered_count) < share_threshold:
        return True

    bounds = distribution.get(category) if distribution else None
    if bounds is not None:
        entry = tally.get(category)
        return (entry.total if entry else 0) < bounds.min
    return False


def capped_categories(
    tally: Mapping[str, CategoryTally],
    distribution: Optional[Mapping[str, Any]],
) -> Set[str]:
    """Categories that already reached their configured maximum count."""
    if not distribution:
        return set()
    capped = set()
    for category, bounds in distribution.items():
        if bounds.max is None:
            continue
        entry = tally.get(category)
        if (entry.total if entry else 0) >= bounds.max:
            capped.add(category)
    return capped


def apply_category_caps(
    eligible: Sequence[Any],
    tally: Mapping[str, CategoryTally],
    distribution: Optional[Mapping[str, Any]],
) -> List[Any]:
    """
    Remove items from capped categories.

    The caps are soft with respect to exhaustion: if removing the capped
    categories would leave nothing, the pool is returned unchanged.

    Args:
        eligible: Items with a ``category`` attribute.
        tally: Per-category counts of the session so far.
        distribution: Per-category bounds.

    Returns:
        Filtered list of eligible items.
    """
    capped = capped_categories(tally, distribution)
    if not capped:
        return list(eligible)

    allowed = [item for item in eligible if item.category not in capped]
    if not allowed:
        logger.debug(
            f"Category caps reached for {sorted(capped)} but no other items "
            f"remain; ignoring caps"
        )
        return list(eligible)

    logger.debug(
        f"Category caps: excluding {sorted(capped)} "
        f"({len(eligible) - len(allowed)} items removed)"
    )
    return allowed
