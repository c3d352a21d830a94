"""
Ad-hoc comparison API endpoints.

Voluntary "which is better?" questions between already-ranked items, used to
refine the order over time.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tierrank.api.dependencies import open_engine
from tierrank.api.schemas import ItemResponse
from tierrank.db.database import get_session
from tierrank.models.item import MediaType, Tier

router = APIRouter(prefix="/collection/{user_id}/compare", tags=["compare"])


class PairResponse(BaseModel):
    """The next pair worth comparing, if any."""

    user_id: str
    pair: tuple[ItemResponse, ItemResponse] | None = Field(
        default=None,
        description="Absent when the pool has nothing left worth comparing",
    )


class OutcomeRequest(BaseModel):
    winner_id: str
    loser_id: str


class OutcomeResponse(BaseModel):
    winner: ItemResponse
    loser: ItemResponse


@router.get("", response_model=PairResponse)
async def request_pair(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    tier: Tier | None = None,
    media_type: MediaType | None = None,
) -> PairResponse:
    """Pick the least-settled near-adjacent pair, optionally within one tier."""
    async with open_engine(session, user_id, write=False) as engine:
        pair = engine.request_comparison_pair(tier, media_type)
        if pair is None:
            return PairResponse(user_id=user_id)

        scores = engine.score_all()
        first, second = (engine.store.get(item_id) for item_id in pair)
        return PairResponse(
            user_id=user_id,
            pair=(
                ItemResponse.from_item(first, scores[first.id]),
                ItemResponse.from_item(second, scores[second.id]),
            ),
        )


@router.post("", response_model=OutcomeResponse)
async def record_outcome(
    user_id: str,
    request: OutcomeRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> OutcomeResponse:
    """Record which of two items is better and apply it to the ranking."""
    async with open_engine(session, user_id) as engine:
        engine.record_comparison_outcome(request.winner_id, request.loser_id)
        scores = engine.score_all()
        winner = engine.store.get(request.winner_id)
        loser = engine.store.get(request.loser_id)
        return OutcomeResponse(
            winner=ItemResponse.from_item(winner, scores[winner.id]),
            loser=ItemResponse.from_item(loser, scores[loser.id]),
        )
