"""
Collection API endpoints.

Read the ranked collection (with scores), its statistics and CSV export,
import already-classified entries, and delete the whole collection.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tierrank.api.dependencies import collection_lock, open_engine
from tierrank.api.schemas import ItemPayloadRequest, ItemResponse
from tierrank.db import delete_collection
from tierrank.db.database import get_session
from tierrank.models.item import ItemPayload, MediaType, Tier
from tierrank.services.ranking_engine import ImportEntry

router = APIRouter(prefix="/collection", tags=["collection"])


class CollectionResponse(BaseModel):
    """Response model for a ranked collection."""

    user_id: str
    items: list[ItemResponse] = Field(default_factory=list)
    total_items: int = 0


class ScoresResponse(BaseModel):
    user_id: str
    scores: dict[str, float] = Field(default_factory=dict)


class CollectionStatsResponse(BaseModel):
    """Response model for collection statistics."""

    user_id: str
    total_items: int = 0
    by_tier: dict[Tier, int] = Field(default_factory=dict)
    by_media_type: dict[MediaType, int] = Field(default_factory=dict)
    total_comparisons: int = 0
    unsettled_items: int = Field(
        default=0,
        description="Items with fewer comparisons than the settled threshold",
    )
    rerank_suggestion: str | None = Field(
        default=None,
        description="Item whose placement rests on the fewest comparisons",
    )


class ImportEntryRequest(BaseModel):
    """One entry already classified into a tier by the importer."""

    external_key: str = Field(..., min_length=1, examples=["603"])
    tier: Tier
    media_type: MediaType = MediaType.MOVIE
    payload: ItemPayloadRequest = Field(default_factory=ItemPayloadRequest)


class ImportRequest(BaseModel):
    entries: list[ImportEntryRequest] = Field(
        ...,
        description="Entries in the order they should appear within each tier",
    )


class ImportResponse(BaseModel):
    user_id: str
    imported: list[str] = Field(default_factory=list, description="New item ids")
    skipped: list[str] = Field(
        default_factory=list,
        description="External keys already in the collection",
    )
    total_items: int = 0


class DeleteResponse(BaseModel):
    """Response model for delete operations."""

    user_id: str
    deleted: bool
    message: str = ""


@router.get("/{user_id}", response_model=CollectionResponse)
async def get_user_collection(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    media_type: MediaType | None = None,
    tier: Tier | None = None,
) -> CollectionResponse:
    """
    Get a user's ranked collection, best first, with current scores.

    Optional filters narrow the list; ranks and scores are unaffected by
    filtering.
    """
    async with open_engine(session, user_id, write=False) as engine:
        scores = engine.score_all()
        items = [
            ItemResponse.from_item(item, scores[item.id])
            for item in engine.store.ordered()
            if (media_type is None or item.media_type == media_type)
            and (tier is None or item.tier == tier)
        ]

    return CollectionResponse(user_id=user_id, items=items, total_items=len(items))


@router.get("/{user_id}/scores", response_model=ScoresResponse)
async def get_scores(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ScoresResponse:
    """Scores for every item, computed in one batch."""
    async with open_engine(session, user_id, write=False) as engine:
        return ScoresResponse(user_id=user_id, scores=engine.score_all())


@router.get("/{user_id}/stats", response_model=CollectionStatsResponse)
async def get_collection_stats(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionStatsResponse:
    async with open_engine(session, user_id, write=False) as engine:
        stats = engine.stats()
        suggestion = engine.suggest_rerank()

    return CollectionStatsResponse(
        user_id=user_id,
        total_items=stats.total_items,
        by_tier=stats.by_tier,
        by_media_type=stats.by_media_type,
        total_comparisons=stats.total_comparisons,
        unsettled_items=stats.unsettled_items,
        rerank_suggestion=suggestion,
    )


@router.get("/{user_id}/export.csv")
async def export_collection(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> Response:
    """Download the rankings as CSV."""
    async with open_engine(session, user_id, write=False) as engine:
        body = engine.export_csv()

    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{user_id}_rankings.csv"'},
    )


@router.post("/{user_id}/import", response_model=ImportResponse)
async def import_entries(
    user_id: str,
    request: ImportRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ImportResponse:
    """
    Import entries that were already classified into tiers.

    Entries are appended to the end of their tier without comparisons; they
    can be refined later through ad-hoc comparisons. Entries already ranked
    are skipped.
    """
    if not request.entries:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Import entries cannot be empty",
        )

    entries = [
        ImportEntry(
            external_key=entry.external_key,
            tier=entry.tier,
            media_type=entry.media_type,
            payload=ItemPayload(**entry.payload.model_dump()),
        )
        for entry in request.entries
    ]

    async with open_engine(session, user_id) as engine:
        report = engine.import_items(entries)
        total = len(engine.store)

    return ImportResponse(
        user_id=user_id,
        imported=report.imported,
        skipped=report.skipped,
        total_items=total,
    )


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_user_collection(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """Delete a user's whole collection, including open comparison sessions."""
    async with collection_lock(user_id):
        deleted = await delete_collection(session, user_id)
        await session.commit()

    if deleted:
        message = "Your rankings have been deleted."
    else:
        message = "No collection found to delete."

    return DeleteResponse(user_id=user_id, deleted=deleted, message=message)
