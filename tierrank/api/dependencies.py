"""
Per-request access to a user's ranking engine.

One user's load -> mutate -> flush cycle is serialized by a per-user
asyncio.Lock held until the transaction commits, so two requests for the
same collection never interleave. Different users never share a lock. The
registry holds locks weakly: a user's lock lives only while a request holds
or waits on it.
"""

from asyncio import Lock
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from weakref import WeakValueDictionary

from sqlalchemy.ext.asyncio import AsyncSession

from tierrank.db.operations import load_engine, save_engine
from tierrank.services.ranking_engine import RankingEngine

_collection_locks: WeakValueDictionary[str, Lock] = WeakValueDictionary()


def collection_lock(user_id: str) -> Lock:
    """The lock serializing writes to one user's collection."""
    return _collection_locks.setdefault(user_id, Lock())


@asynccontextmanager
async def open_engine(
    session: AsyncSession, user_id: str, write: bool = True
) -> AsyncGenerator[RankingEngine, None]:
    """
    Load a user's engine, yield it, and commit its state if the block succeeds.

    If the block raises, nothing is flushed and the transaction is rolled
    back by the session dependency.
    """
    async with collection_lock(user_id):
        engine, collection = await load_engine(session, user_id)
        yield engine
        if write:
            await save_engine(session, collection, engine)
            await session.commit()
