"""
Item API endpoints.

Classify new items (which opens an insertion session), remove items, move
them between tiers, re-rank them and reorder a tier by hand.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tierrank.api.dependencies import open_engine
from tierrank.api.schemas import ItemPayloadRequest, SessionResponse
from tierrank.db.database import get_session
from tierrank.models.item import ItemPayload, MediaType, Tier

router = APIRouter(prefix="/collection/{user_id}", tags=["items"])


class ClassifyRequest(BaseModel):
    """Request model for ranking a newly watched item."""

    external_key: str = Field(..., min_length=1, description="Catalog id", examples=["603"])
    tier: Tier
    media_type: MediaType = MediaType.MOVIE
    payload: ItemPayloadRequest = Field(default_factory=ItemPayloadRequest)


class RetierRequest(BaseModel):
    tier: Tier


class ReorderRequest(BaseModel):
    """A user-decided order for a tier, best first."""

    item_ids: list[str] = Field(..., description="Every item of the tier, best first")
    media_type: MediaType | None = Field(
        default=None,
        description="If set, item_ids orders only this media type within the tier",
    )


class RemoveResponse(BaseModel):
    user_id: str
    item_id: str
    removed: bool = True
    total_items: int = 0


class ScoreResponse(BaseModel):
    item_id: str
    score: float


class ReorderResponse(BaseModel):
    user_id: str
    tier: Tier
    item_ids: list[str]


@router.post("/items", response_model=SessionResponse, status_code=201)
async def classify_item(
    user_id: str,
    request: ClassifyRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SessionResponse:
    """
    Add a newly classified item.

    Returns an insertion session. If the tier is empty for this media type the
    session is already converged; otherwise it carries the first comparison.
    """
    async with open_engine(session, user_id) as engine:
        insertion = engine.classify_new_item(
            request.external_key,
            request.tier,
            ItemPayload(**request.payload.model_dump()),
            media_type=request.media_type,
        )
        return SessionResponse.from_session(insertion)


@router.delete("/items/{item_id}", response_model=RemoveResponse)
async def remove_item(
    user_id: str,
    item_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RemoveResponse:
    """Remove an item; every later rank moves up one place."""
    async with open_engine(session, user_id) as engine:
        engine.remove_item(item_id)
        total = len(engine.store)

    return RemoveResponse(user_id=user_id, item_id=item_id, total_items=total)


@router.get("/items/{item_id}/score", response_model=ScoreResponse)
async def get_item_score(
    user_id: str,
    item_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ScoreResponse:
    async with open_engine(session, user_id, write=False) as engine:
        return ScoreResponse(item_id=item_id, score=engine.score_of(item_id))


@router.post("/items/{item_id}/tier", response_model=SessionResponse)
async def retier_item(
    user_id: str,
    item_id: str,
    request: RetierRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SessionResponse:
    """
    Move an item to another tier.

    Opens a full insertion session in the new tier. The item stays in its old
    tier until that session converges.
    """
    async with open_engine(session, user_id) as engine:
        return SessionResponse.from_session(engine.retier_item(item_id, request.tier))


@router.post("/items/{item_id}/rerank", response_model=SessionResponse)
async def rerank_item(
    user_id: str,
    item_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SessionResponse:
    """Re-place an item within its tier through fresh comparisons."""
    async with open_engine(session, user_id) as engine:
        return SessionResponse.from_session(engine.rerank_item(item_id))


@router.put("/tiers/{tier}/order", response_model=ReorderResponse)
async def reorder_tier(
    user_id: str,
    tier: Tier,
    request: ReorderRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ReorderResponse:
    """Apply a hand-made order to a tier."""
    async with open_engine(session, user_id) as engine:
        engine.reorder_tier(tier, request.item_ids, request.media_type)
        ordered = [item.id for item in engine.store.tier_members(tier)]

    return ReorderResponse(user_id=user_id, tier=tier, item_ids=ordered)
