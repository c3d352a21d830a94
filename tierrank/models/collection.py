"""
The in-memory collection store.

Holds one user's ranked items and the latest outcome for every compared pair.
"""

from dataclasses import dataclass, field
from threading import RLock

from tierrank.models.failure import ItemNotFoundError
from tierrank.models.item import MediaType, RankedItem, Tier

Pair = frozenset[str]


def pair_key(a_id: str, b_id: str) -> Pair:
    """Unordered key for a compared pair."""
    return frozenset((a_id, b_id))


@dataclass
class CollectionStore:
    """
    A user's ranked collection.

    Owns the item set exclusively. Other components receive references to
    items and mutate them only through the rank ordering functions, under
    `lock`.

    `outcomes` keeps the latest resolved winner for every compared pair.
    `revision` is bumped on every committed mutation so suspended insertion
    sessions can tell the order moved underneath them.
    """

    user_id: str = ""
    items: dict[str, RankedItem] = field(default_factory=dict)
    outcomes: dict[Pair, str] = field(default_factory=dict)
    revision: int = 0
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.items

    def get(self, item_id: str) -> RankedItem:
        """Get an item by id, raising ItemNotFoundError if absent."""
        item = self.items.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def find_by_external_key(self, external_key: str, media_type: MediaType) -> RankedItem | None:
        for item in self.items.values():
            if item.external_key == external_key and item.media_type == media_type:
                return item
        return None

    def ordered(self) -> list[RankedItem]:
        """All items, best first."""
        return sorted(self.items.values(), key=lambda item: item.rank)

    def tier_members(self, tier: Tier) -> list[RankedItem]:
        """Items of one tier (all media types), best first."""
        return sorted(
            (item for item in self.items.values() if item.tier == tier),
            key=lambda item: item.rank,
        )

    def peers(
        self, tier: Tier, media_type: MediaType, exclude_id: str | None = None
    ) -> list[RankedItem]:
        """Items sharing tier and media type, best first."""
        return sorted(
            (
                item
                for item in self.items.values()
                if item.tier == tier and item.media_type == media_type and item.id != exclude_id
            ),
            key=lambda item: item.rank,
        )

    def tier_counts(self) -> dict[Tier, int]:
        counts = {tier: 0 for tier in Tier}
        for item in self.items.values():
            counts[item.tier] += 1
        return counts

    def winner_of(self, a_id: str, b_id: str) -> str | None:
        """Latest resolved winner between two items, if they were ever compared."""
        return self.outcomes.get(pair_key(a_id, b_id))

    def record_outcome(self, winner_id: str, loser_id: str) -> None:
        self.outcomes[pair_key(winner_id, loser_id)] = winner_id

    def forget_outcomes(self, item_id: str) -> None:
        """Drop every recorded outcome involving an item."""
        self.outcomes = {pair: w for pair, w in self.outcomes.items() if item_id not in pair}

    def bump_revision(self) -> None:
        self.revision += 1
