"""
Score calculation.

A score is a pure function of (tier, position within the item's
tier/media-type group, group size): the best item of a group gets the top of
its tier's band, the worst gets the bottom, everything else is linearly
interpolated between them and rounded to one decimal.

    Good   -> 10.0 .. 7.0
    Medium ->  6.9 .. 4.0
    Bad    ->  3.9 .. 1.0

The bands are fixed; they are not configurable per user.
"""

import math
from collections import defaultdict
from collections.abc import Iterable

from tierrank.models.item import MediaType, RankedItem, Tier


def _round_one_decimal(value: float) -> float:
    # Half-up, so 8.45 -> 8.5 regardless of banker's rounding
    return math.floor(value * 10 + 0.5) / 10


def _interpolate(tier: Tier, index: int, count: int) -> float:
    top, bottom = tier.score_band
    if count == 1:
        return top
    return _round_one_decimal(top - (top - bottom) * index / (count - 1))


def score(item: RankedItem, group: list[RankedItem]) -> float:
    """
    Score a single item.

    Args:
        item: The item to score
        group: Items sharing the item's tier and media type, sorted by rank

    Returns:
        Score in the item's tier band. An item missing from `group` is scored
        as if it were the group's only member.
    """
    for index, member in enumerate(group):
        if member.id == item.id:
            return _interpolate(item.tier, index, len(group))
    return item.tier.score_band[0]


def batch_score(items: Iterable[RankedItem]) -> dict[str, float]:
    """
    Score every item in one pass.

    Items are grouped by (tier, media type), each group is sorted by rank
    once, and every member is scored from its index. Calling this twice on
    an unchanged collection returns identical values.
    """
    groups: dict[tuple[Tier, MediaType], list[RankedItem]] = defaultdict(list)
    for item in items:
        groups[item.peer_key].append(item)

    scores: dict[str, float] = {}
    for (tier, _media_type), group in groups.items():
        group.sort(key=lambda member: member.rank)
        for index, member in enumerate(group):
            scores[member.id] = _interpolate(tier, index, len(group))
    return scores
