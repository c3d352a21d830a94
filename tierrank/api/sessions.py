"""
Insertion session API endpoints.

A session may be answered minutes after it was opened. Reading it re-derives
its bounds against the current order, so a client that comes back after
other changes always gets a comparison that still makes sense.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tierrank.api.dependencies import open_engine
from tierrank.api.schemas import SessionResponse
from tierrank.db.database import get_session

router = APIRouter(prefix="/collection/{user_id}/sessions", tags=["sessions"])


class AnswerRequest(BaseModel):
    winner_id: str = Field(..., description="Id of the item judged better")


class AbandonResponse(BaseModel):
    session_id: str
    abandoned: bool = True


@router.get("/{session_id}", response_model=SessionResponse)
async def resume_session(
    user_id: str,
    session_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SessionResponse:
    """Get a session's current comparison, re-derived against the current order."""
    async with open_engine(session, user_id) as engine:
        return SessionResponse.from_session(engine.resume_session(session_id))


@router.post("/{session_id}/answer", response_model=SessionResponse)
async def answer_comparison(
    user_id: str,
    session_id: str,
    request: AnswerRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SessionResponse:
    """
    Answer the pending comparison.

    Returns the next comparison, or the converged state with the final rank.
    """
    async with open_engine(session, user_id) as engine:
        return SessionResponse.from_session(engine.answer_comparison(session_id, request.winner_id))


@router.delete("/{session_id}", response_model=AbandonResponse)
async def abandon_session(
    user_id: str,
    session_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AbandonResponse:
    """Skip placement. No rank changes; comparisons already answered still count."""
    async with open_engine(session, user_id) as engine:
        engine.abandon_session(session_id)

    return AbandonResponse(session_id=session_id)
