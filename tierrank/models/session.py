"""
Insertion session model.

An insertion session is the suspended state of a binary-search placement:
each answer may arrive minutes after the previous question, with other
mutations in between. The session therefore stores what it has *learned*
(which peers the item lost to and which it beat), not just the raw
`low`/`high` indices, and re-derives the indices against the current order
every time it advances.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum

from tierrank.models.item import MediaType, RankedItem, Tier


class SessionPurpose(str, Enum):
    """Why the item is being placed."""

    NEW = "new"
    RETIER = "retier"
    RERANK = "rerank"


class SessionStatus(str, Enum):
    SEARCHING = "searching"
    CONVERGED = "converged"


@dataclass
class InsertionSession:
    """
    Binary-search placement of one item within its (tier, media type) peers.

    Attributes:
        item_id: Item being placed
        tier: Tier the item is being placed into
        media_type: Media type of the item (selects the peer group)
        purpose: NEW items are held in `pending` until converged; RETIER and
            RERANK items stay in their current slot until converged
        pending: The provisional item for NEW sessions, None otherwise
        low, high: Insertion position bounds among current peers
        opponent_id: Peer the item is currently being compared against
        lost_to: Peers judged better than the item
        beats: Peers judged worse than the item
        comparisons: Number of answered comparisons
        revision: Collection revision the bounds were last derived against
        final_rank: Collection-wide rank once converged
    """

    item_id: str
    tier: Tier
    media_type: MediaType
    purpose: SessionPurpose = SessionPurpose.NEW
    pending: RankedItem | None = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    low: int = 0
    high: int = 0
    opponent_id: str | None = None
    lost_to: list[str] = field(default_factory=list)
    beats: list[str] = field(default_factory=list)
    comparisons: int = 0
    revision: int = 0
    status: SessionStatus = SessionStatus.SEARCHING
    final_rank: int | None = None

    @property
    def is_converged(self) -> bool:
        return self.status == SessionStatus.CONVERGED

    @property
    def position(self) -> int | None:
        """Final position among peers (0 = best), once converged."""
        return self.low if self.is_converged else None
