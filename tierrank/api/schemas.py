"""Response models shared by the collection routers."""

from pydantic import BaseModel, Field

from tierrank.models.item import MediaType, RankedItem, Tier
from tierrank.models.session import InsertionSession, SessionPurpose, SessionStatus


class ItemPayloadRequest(BaseModel):
    """Opaque catalog attributes supplied by the caller."""

    title: str = ""
    poster_path: str | None = None
    release_date: str | None = Field(default=None, examples=["1999-03-31"])
    overview: str = ""


class ItemResponse(BaseModel):
    """One ranked item with its current score."""

    id: str
    external_key: str
    media_type: MediaType
    tier: Tier
    rank: int
    score: float
    comparison_count: int
    title: str
    poster_path: str | None = None
    release_date: str | None = None

    @classmethod
    def from_item(cls, item: RankedItem, score: float) -> "ItemResponse":
        return cls(
            id=item.id,
            external_key=item.external_key,
            media_type=item.media_type,
            tier=item.tier,
            rank=item.rank,
            score=score,
            comparison_count=item.comparison_count,
            title=item.payload.title,
            poster_path=item.payload.poster_path,
            release_date=item.payload.release_date,
        )


class PendingComparison(BaseModel):
    """The question an insertion session is waiting on."""

    item_id: str = Field(..., description="Item being placed")
    opponent_id: str = Field(..., description="Already-ranked item to compare against")


class SessionResponse(BaseModel):
    """State of an insertion session."""

    session_id: str
    item_id: str
    purpose: SessionPurpose
    status: SessionStatus
    tier: Tier
    media_type: MediaType
    comparisons: int
    comparison: PendingComparison | None = Field(
        default=None,
        description="Present while searching",
    )
    final_rank: int | None = Field(
        default=None,
        description="Collection-wide rank once converged",
    )

    @classmethod
    def from_session(cls, session: InsertionSession) -> "SessionResponse":
        comparison = None
        if not session.is_converged and session.opponent_id is not None:
            comparison = PendingComparison(item_id=session.item_id, opponent_id=session.opponent_id)
        return cls(
            session_id=session.session_id,
            item_id=session.item_id,
            purpose=session.purpose,
            status=session.status,
            tier=session.tier,
            media_type=session.media_type,
            comparisons=session.comparisons,
            comparison=comparison,
            final_rank=session.final_rank,
        )
