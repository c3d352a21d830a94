"""
Pair selection for ad-hoc comparisons.

Picks the next two items to show the user. Comparing items far apart in rank
wastes effort (the answer is predictable); comparing only neighbours
converges slowly after a bulk import. Candidates are therefore pairs of
peers (same tier, same media type) within a small window of each other.

Among candidates the preferred pair has, in order:
1. the lowest combined comparison count
2. never been compared against each other
3. the smallest rank distance
4. the best rank

A pair is settled once both items have reached the settled threshold;
settled pairs are never offered.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping

from tierrank.config import DEFAULT_PAIR_WINDOW, DEFAULT_SETTLED_THRESHOLD
from tierrank.models.collection import Pair, pair_key
from tierrank.models.item import MediaType, RankedItem, Tier

logger = logging.getLogger(__name__)

ItemPair = tuple[RankedItem, RankedItem]


def _candidates(
    items: Iterable[RankedItem],
    window: int,
    settled: int,
) -> list[ItemPair]:
    groups: dict[tuple[Tier, MediaType], list[RankedItem]] = defaultdict(list)
    for item in items:
        groups[item.peer_key].append(item)

    pairs: list[ItemPair] = []
    for group in groups.values():
        group.sort(key=lambda item: item.rank)
        for i, first in enumerate(group):
            for second in group[i + 1 : i + 1 + window]:
                if first.comparison_count >= settled and second.comparison_count >= settled:
                    continue
                pairs.append((first, second))
    return pairs


def _best(pairs: list[ItemPair], outcomes: Mapping[Pair, str] | None) -> ItemPair | None:
    if not pairs:
        return None
    known = outcomes or {}

    def preference(pair: ItemPair) -> tuple[int, bool, int, int]:
        first, second = pair
        return (
            first.comparison_count + second.comparison_count,
            pair_key(first.id, second.id) in known,
            second.rank - first.rank,
            first.rank,
        )

    return min(pairs, key=preference)


def pick_for_tier(
    tier: Tier,
    items: Iterable[RankedItem],
    window: int = DEFAULT_PAIR_WINDOW,
    settled: int = DEFAULT_SETTLED_THRESHOLD,
    outcomes: Mapping[Pair, str] | None = None,
) -> ItemPair | None:
    """
    Select two items of `tier` to compare.

    Args:
        tier: Tier to pick from
        items: Candidate pool (typically already filtered by media type)
        window: Max rank-order distance between the two picked items
        settled: Comparison count at which an item is considered settled
        outcomes: Previously resolved pairs, to prefer fresh match-ups

    Returns:
        (better-ranked, worse-ranked) or None if nothing is worth comparing
    """
    pool = [item for item in items if item.tier == tier]
    if len(pool) < 2:
        return None

    pair = _best(_candidates(pool, window, settled), outcomes)
    if pair is None:
        logger.debug("All near-adjacent %s pairs are settled", tier.value)
    return pair


def pick_any(
    items: Iterable[RankedItem],
    window: int = DEFAULT_PAIR_WINDOW,
    settled: int = DEFAULT_SETTLED_THRESHOLD,
    outcomes: Mapping[Pair, str] | None = None,
) -> ItemPair | None:
    """
    Select a pair from the whole pool, with no tier focus.

    Pairs still never cross a tier or media type: such an outcome could not
    change any rank.
    """
    return _best(_candidates(items, window, settled), outcomes)


def pick_least_compared(items: Iterable[RankedItem]) -> RankedItem | None:
    """The item whose placement rests on the fewest comparisons (ties: best rank)."""
    return min(items, key=lambda item: (item.comparison_count, item.rank), default=None)
