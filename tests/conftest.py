from collections.abc import Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tierrank.api import dependencies
from tierrank.db.database import get_session
from tierrank.main import app
from tierrank.models import failure as failure_module
from tierrank.models.collection import CollectionStore
from tierrank.models.db import Base
from tierrank.models.item import ItemPayload, MediaType, RankedItem, Tier

StoreEntry = tuple[str, Tier] | tuple[str, Tier, MediaType]


@pytest.fixture(autouse=True)
def clear_finalized_responses():
    """Clear the finalized responses set between tests.

    This prevents test isolation issues where Python reuses memory
    addresses for new objects, causing id() collisions with previously
    finalized responses.
    """
    failure_module._finalized_responses.clear()
    yield
    failure_module._finalized_responses.clear()


def make_store(entries: list[StoreEntry], user_id: str = "user-1") -> CollectionStore:
    """
    Build a store from entries listed best first.

    Each item's id and external key are the given key, so tests can refer to
    items by name. Entries must already be in band order.
    """
    store = CollectionStore(user_id=user_id)
    for rank, entry in enumerate(entries, start=1):
        key, tier = entry[0], entry[1]
        media_type = entry[2] if len(entry) == 3 else MediaType.MOVIE
        store.items[key] = RankedItem(
            id=key,
            external_key=key,
            media_type=media_type,
            tier=tier,
            rank=rank,
            payload=ItemPayload(title=key.upper()),
        )
    return store


@pytest.fixture
def build_store() -> Callable[..., CollectionStore]:
    """Factory fixture for stores built from (key, tier[, media_type]) entries."""
    return make_store


def ranks(store: CollectionStore) -> dict[str, int]:
    return {item.id: item.rank for item in store.items.values()}


@pytest.fixture
def rank_map() -> Callable[[CollectionStore], dict[str, int]]:
    """Snapshot of item id -> rank."""
    return ranks


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session(async_engine) -> AsyncSession:
    """Provide a database session for tests."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture
async def client(async_engine):
    """Provide an async test client with overridden database session."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    dependencies._collection_locks.clear()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
