"""
Ranked item model.

A RankedItem is one entry in a user's collection: a piece of media the user
has classified into a tier. Lower rank is better (1 = best in the whole
collection). Catalog attributes (title, poster, release date, overview) are
opaque payload; ranking logic never looks at them.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class Tier(str, Enum):
    """Qualitative bucket an item is classified into."""

    GOOD = "Good"
    MEDIUM = "Medium"
    BAD = "Bad"

    @property
    def order(self) -> int:
        """Band position: Good ranks above Medium, Medium above Bad."""
        match self:
            case Tier.GOOD:
                return 0
            case Tier.MEDIUM:
                return 1
            case Tier.BAD:
                return 2

    @property
    def score_band(self) -> tuple[float, float]:
        """(top, bottom) of the tier's score range."""
        match self:
            case Tier.GOOD:
                return (10.0, 7.0)
            case Tier.MEDIUM:
                return (6.9, 4.0)
            case Tier.BAD:
                return (3.9, 1.0)


TIERS_IN_BAND_ORDER: tuple[Tier, ...] = (Tier.GOOD, Tier.MEDIUM, Tier.BAD)


class MediaType(str, Enum):
    """Kind of media; movies and shows are compared and scored separately."""

    MOVIE = "movie"
    TV = "tv"


@dataclass(frozen=True)
class ItemPayload:
    """Catalog attributes copied onto an item at classification time."""

    title: str = ""
    poster_path: str | None = None
    release_date: str | None = None
    overview: str = ""

    @property
    def year(self) -> str | None:
        if self.release_date is None or len(self.release_date) < 4:
            return None
        return self.release_date[:4]


def new_item_id() -> str:
    """Generate a fresh, never-reused item id."""
    return uuid.uuid4().hex


@dataclass
class RankedItem:
    """
    One entry in a user's ranked collection.

    `rank` is 0 while the item is still provisional (being placed by an
    insertion session); it becomes a positive integer once committed.
    """

    external_key: str
    media_type: MediaType
    tier: Tier
    payload: ItemPayload = field(default_factory=ItemPayload)
    id: str = field(default_factory=new_item_id)
    rank: int = 0
    comparison_count: int = 0
    added_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def peer_key(self) -> tuple[Tier, MediaType]:
        """Group this item is compared and scored within."""
        return (self.tier, self.media_type)

    def record_comparison(self) -> None:
        """Count one comparison this item took part in."""
        self.comparison_count += 1

    def __repr__(self) -> str:
        return (
            f"RankedItem(id={self.id[:8]}, key={self.external_key}, "
            f"{self.tier.value}/{self.media_type.value}, rank={self.rank})"
        )
