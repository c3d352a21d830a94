"""
Database CRUD operations.

A collection is read whole into a CollectionStore (plus its open insertion
sessions) at the start of a request and written back after the engine has
committed. Rows are synced by id rather than replaced, so unchanged rows are
left alone and unique constraints never see a delete/insert of the same key
in one flush.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tierrank.models.collection import CollectionStore
from tierrank.models.db import (
    ComparisonOutcomeDB,
    InsertionSessionDB,
    RankedItemDB,
    UserCollectionDB,
)
from tierrank.models.item import ItemPayload, MediaType, RankedItem, Tier
from tierrank.models.session import InsertionSession, SessionPurpose, SessionStatus
from tierrank.services.ranking_engine import RankingEngine

# --- Collection Operations ---


async def get_collection(session: AsyncSession, user_id: str) -> UserCollectionDB | None:
    """
    Get a user's collection by user_id, with items, outcomes and sessions loaded.

    Returns None if no collection exists for this user.
    """
    result = await session.execute(
        select(UserCollectionDB)
        .where(UserCollectionDB.user_id == user_id)
        .options(
            selectinload(UserCollectionDB.items),
            selectinload(UserCollectionDB.outcomes),
            selectinload(UserCollectionDB.sessions),
        )
    )
    return result.scalar_one_or_none()


async def create_collection(session: AsyncSession, user_id: str) -> UserCollectionDB:
    """
    Create a new, empty collection for a user.

    Raises IntegrityError if collection already exists.
    """
    collection = UserCollectionDB(user_id=user_id, revision=0, items=[], outcomes=[], sessions=[])
    session.add(collection)
    await session.flush()
    return collection


async def get_or_create_collection(
    session: AsyncSession, user_id: str
) -> tuple[UserCollectionDB, bool]:
    """
    Get existing collection or create new one.

    Returns:
        Tuple of (collection, created) where created is True if new.
    """
    collection = await get_collection(session, user_id)
    if collection:
        return collection, False

    collection = await create_collection(session, user_id)
    return collection, True


async def delete_collection(session: AsyncSession, user_id: str) -> bool:
    """
    Delete a user's collection.

    Returns True if deleted, False if not found.
    """
    collection = await get_collection(session, user_id)
    if not collection:
        return False

    await session.delete(collection)
    return True


# --- Conversion ---


def _row_to_item(row: RankedItemDB) -> RankedItem:
    return RankedItem(
        id=row.id,
        external_key=row.external_key,
        media_type=MediaType(row.media_type),
        tier=Tier(row.tier),
        rank=row.rank,
        comparison_count=row.comparison_count,
        payload=ItemPayload(
            title=row.title,
            poster_path=row.poster_path,
            release_date=row.release_date,
            overview=row.overview,
        ),
        added_at=row.added_at,
    )


def _copy_item_to_row(item: RankedItem, row: RankedItemDB) -> None:
    row.external_key = item.external_key
    row.media_type = item.media_type.value
    row.tier = item.tier.value
    row.rank = item.rank
    row.comparison_count = item.comparison_count
    row.title = item.payload.title
    row.poster_path = item.payload.poster_path
    row.release_date = item.payload.release_date
    row.overview = item.payload.overview
    row.added_at = item.added_at


def item_to_dict(item: RankedItem) -> dict[str, Any]:
    """Serialize a provisional item for JSON storage."""
    return {
        "id": item.id,
        "external_key": item.external_key,
        "media_type": item.media_type.value,
        "tier": item.tier.value,
        "comparison_count": item.comparison_count,
        "title": item.payload.title,
        "poster_path": item.payload.poster_path,
        "release_date": item.payload.release_date,
        "overview": item.payload.overview,
        "added_at": item.added_at.isoformat(),
    }


def item_from_dict(data: dict[str, Any]) -> RankedItem:
    return RankedItem(
        id=data["id"],
        external_key=data["external_key"],
        media_type=MediaType(data["media_type"]),
        tier=Tier(data["tier"]),
        comparison_count=data.get("comparison_count", 0),
        payload=ItemPayload(
            title=data.get("title", ""),
            poster_path=data.get("poster_path"),
            release_date=data.get("release_date"),
            overview=data.get("overview", ""),
        ),
        added_at=datetime.fromisoformat(data["added_at"]),
    )


def collection_to_store(collection: UserCollectionDB) -> CollectionStore:
    """Convert a database collection to a domain store."""
    store = CollectionStore(user_id=collection.user_id, revision=collection.revision)
    for row in collection.items:
        item = _row_to_item(row)
        store.items[item.id] = item
    for outcome in collection.outcomes:
        store.record_outcome(
            outcome.winner_id,
            outcome.second_id if outcome.winner_id == outcome.first_id else outcome.first_id,
        )
    return store


def session_to_model(row: InsertionSessionDB) -> InsertionSession:
    """Convert a stored session to the domain model."""
    return InsertionSession(
        session_id=row.id,
        item_id=row.item_id,
        tier=Tier(row.tier),
        media_type=MediaType(row.media_type),
        purpose=SessionPurpose(row.purpose),
        status=SessionStatus(row.status),
        pending=item_from_dict(row.pending) if row.pending else None,
        low=row.low,
        high=row.high,
        opponent_id=row.opponent_id,
        lost_to=list(row.lost_to or []),
        beats=list(row.beats or []),
        comparisons=row.comparisons,
        revision=row.revision,
        final_rank=row.final_rank,
    )


def _copy_session_to_row(model: InsertionSession, row: InsertionSessionDB) -> None:
    row.item_id = model.item_id
    row.tier = model.tier.value
    row.media_type = model.media_type.value
    row.purpose = model.purpose.value
    row.status = model.status.value
    row.pending = item_to_dict(model.pending) if model.pending is not None else None
    row.low = model.low
    row.high = model.high
    row.opponent_id = model.opponent_id
    row.lost_to = list(model.lost_to)
    row.beats = list(model.beats)
    row.comparisons = model.comparisons
    row.revision = model.revision
    row.final_rank = model.final_rank


# --- Engine load / flush ---


async def load_engine(
    session: AsyncSession, user_id: str
) -> tuple[RankingEngine, UserCollectionDB]:
    """
    Load a user's collection and open sessions into a RankingEngine.

    Creates an empty collection on first use.
    """
    collection, _ = await get_or_create_collection(session, user_id)
    store = collection_to_store(collection)
    sessions = {row.id: session_to_model(row) for row in collection.sessions}
    return RankingEngine(store, sessions), collection


async def save_engine(
    session: AsyncSession, collection: UserCollectionDB, engine: RankingEngine
) -> UserCollectionDB:
    """
    Write the engine's committed state back to the collection rows.

    Items, outcomes and sessions are each synced by key: changed rows are
    updated, new ones added, vanished ones deleted. Converged sessions are
    dropped; their result already lives in the item ranks.
    """
    store = engine.store
    collection.revision = store.revision

    item_rows = {row.id: row for row in collection.items}
    for item in store.items.values():
        item_row = item_rows.pop(item.id, None)
        if item_row is None:
            item_row = RankedItemDB(id=item.id)
            collection.items.append(item_row)
        _copy_item_to_row(item, item_row)
    for stale_item in item_rows.values():
        collection.items.remove(stale_item)

    outcome_rows = {(row.first_id, row.second_id): row for row in collection.outcomes}
    for pair, winner_id in store.outcomes.items():
        first_id, second_id = sorted(pair)
        outcome_row = outcome_rows.pop((first_id, second_id), None)
        if outcome_row is None:
            outcome_row = ComparisonOutcomeDB(first_id=first_id, second_id=second_id)
            collection.outcomes.append(outcome_row)
        outcome_row.winner_id = winner_id
    for stale_outcome in outcome_rows.values():
        collection.outcomes.remove(stale_outcome)

    session_rows = {row.id: row for row in collection.sessions}
    for model in engine.sessions.values():
        if model.is_converged:
            continue
        session_row = session_rows.pop(model.session_id, None)
        if session_row is None:
            session_row = InsertionSessionDB(id=model.session_id)
            collection.sessions.append(session_row)
        _copy_session_to_row(model, session_row)
    for stale_session in session_rows.values():
        collection.sessions.remove(stale_session)

    await session.flush()
    return collection
