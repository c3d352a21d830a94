from tierrank.db.database import get_session, init_db
from tierrank.db.operations import (
    collection_to_store,
    create_collection,
    delete_collection,
    get_collection,
    get_or_create_collection,
    load_engine,
    save_engine,
    session_to_model,
)

__all__ = [
    "collection_to_store",
    "create_collection",
    "delete_collection",
    "get_collection",
    "get_or_create_collection",
    "get_session",
    "init_db",
    "load_engine",
    "save_engine",
    "session_to_model",
]
