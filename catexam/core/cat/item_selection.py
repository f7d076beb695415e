"""
Maximum Fisher Information (MFI) item selection for Computerized Adaptive Testing.

Selects the next item from the eligible pool that maximizes 3PL Fisher
information at the current ability estimate (theta), with a category
balancing override.

The selection pipeline:
1. Filter out already-answered and inactive items
2. Drop items from categories that reached their configured cap
3. Compute Fisher information for each eligible item at current theta and
   rank the candidates (ties: fewer administrations first, then smaller id)
4. Category override: among the top candidates, the first one from an
   under-represented category wins if it carries enough of the maximum
   information
5. Otherwise apply exposure control via randomesque selection from the
   top-K items (K=1 always takes the most informative item)

References:
    - Lord, F. M. (1980). Applications of Item Response Theory to Practical
      Testing Problems.
    - Kingsbury, G. G., & Zara, A. R. (1989). Procedures for selecting items
      for computerized adaptive tests.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any, Collection, List, Mapping, Optional, Sequence

from catexam.core.cat.content_balancing import (
    CATEGORY_BALANCE_WINDOW,
    CATEGORY_INFORMATION_TOLERANCE,
    CATEGORY_SHARE_THRESHOLD,
    CategoryTally,
    apply_category_caps,
    is_underrepresented,
)
from catexam.core.cat.irt import item_information
from catexam.core.cat.storage import CalibratedItem

logger = logging.getLogger(__name__)

# Exposure control disabled by default: the argmax item is always administered.
RANDOMESQUE_K = 1


@dataclass
class ItemCandidate:
    """An item with its computed Fisher information value."""

    item: CalibratedItem
    information: float


def rank_candidates(
    items: Sequence[CalibratedItem], theta: float
) -> List[ItemCandidate]:
    """
    Compute information at theta and sort candidates best-first.

    Equal information is broken by fewer ``times_administered``, then by the
    smaller id, so the ranking is deterministic.
    """
    candidates = [
        ItemCandidate(item=item, information=item_information(theta, item.params))
        for item in items
    ]
    candidates.sort(
        key=lambda c: (-c.information, c.item.times_administered, c.item.id)
    )
    return candidates


def select_next_item(
    item_pool: Sequence[CalibratedItem],
    theta: float,
    answered_ids: Collection[str],
    category_tally: Mapping[str, CategoryTally],
    category_distribution: Optional[Mapping[str, Any]] = None,
    share_threshold: float = CATEGORY_SHARE_THRESHOLD,
    information_tolerance: float = CATEGORY_INFORMATION_TOLERANCE,
    balance_window: int = CATEGORY_BALANCE_WINDOW,
    randomesque_k: int = RANDOMESQUE_K,
    rng: Optional[random.Random] = None,
) -> Optional[CalibratedItem]:
    """
    Select the next item using Maximum Fisher Information with category balancing.

    Args:
        item_pool: Candidate items (typically the repository's eligible items).
        theta: Current ability estimate.
        answered_ids: Ids of items already answered in this session.
        category_tally: Per-category counts of the session so far.
        category_distribution: Optional per-category ``{min, max}`` bounds.
        share_threshold: Share of answered items below which a category is
            under-represented.
        information_tolerance: Fraction of the maximum information the
            under-represented candidate must reach to be preferred.
        balance_window: Number of top candidates scanned for the override.
        randomesque_k: Number of top items to select from randomly for
            exposure control. 1 disables randomesque selection.
        rng: Optional Random instance for deterministic testing.

    Returns:
        The selected item, or None if no eligible items remain.
    """
    answered = set(answered_ids)
    eligible = [
        item for item in item_pool if item.id not in answered and item.is_active
    ]

    if not eligible:
        logger.warning(
            "No eligible items remaining after filtering. "
            f"Pool size: {len(item_pool)}, answered: {len(answered)}"
        )
        return None

    eligible = apply_category_caps(eligible, category_tally, category_distribution)

    candidates = rank_candidates(eligible, theta)
    answered_count = sum(t.total for t in category_tally.values())

    selected = None
    if answered_count > 0:
        selected = _apply_category_override(
            candidates=candidates,
            category_tally=category_tally,
            answered_count=answered_count,
            category_distribution=category_distribution,
            share_threshold=share_threshold,
            information_tolerance=information_tolerance,
            balance_window=balance_window,
        )

    if selected is None:
        selected = _apply_exposure_control(candidates, randomesque_k, rng)

    logger.debug(
        f"Item selection: theta={theta:.3f}, "
        f"eligible={len(candidates)}, "
        f"selected {selected.item.id} ({selected.item.category}, "
        f"a={selected.item.params.a:.2f}, b={selected.item.params.b:.2f}, "
        f"c={selected.item.params.c:.2f}, info={selected.information:.4f})"
    )

    return selected.item


def _apply_category_override(
    candidates: List[ItemCandidate],
    category_tally: Mapping[str, CategoryTally],
    answered_count: int,
    category_distribution: Optional[Mapping[str, Any]],
    share_threshold: float,
    information_tolerance: float,
    balance_window: int,
) -> Optional[ItemCandidate]:
    """
    Prefer an item from an under-represented category when the precision
    loss is acceptable.

    Scans the ``balance_window`` most informative candidates in order and
    returns the first whose category is under-represented and whose
    information is at least ``information_tolerance`` times the maximum.

    Returns:
        The preferred candidate, or None to keep the information ranking.
    """
    max_information = candidates[0].information
    for candidate in candidates[:balance_window]:
        if candidate.information < information_tolerance * max_information:
            continue
        if is_underrepresented(
            candidate.item.category,
            category_tally,
            answered_count,
            share_threshold=share_threshold,
            distribution=category_distribution,
        ):
            if candidate is not candidates[0]:
                logger.debug(
                    f"Category balancing: preferring {candidate.item.id} "
                    f"({candidate.item.category}) with "
                    f"info={candidate.information:.4f} "
                    f"over max info={max_information:.4f}"
                )
            return candidate
    return None


def _apply_exposure_control(
    candidates: List[ItemCandidate],
    k: int,
    rng: Optional[random.Random] = None,
) -> ItemCandidate:
    """
    Apply randomesque exposure control by selecting randomly from the top-K items.

    Args:
        candidates: List of ItemCandidate sorted by information (descending).
        k: Number of top items to select from.
        rng: Optional Random instance for deterministic testing.

    Returns:
        The selected ItemCandidate.
    """
    if k <= 1:
        return candidates[0]
    top_k = candidates[: min(k, len(candidates))]
    if rng is not None:
        return rng.choice(top_k)
    return random.choice(top_k)
