from tierrank.api.collection import router as collection_router
from tierrank.api.compare import router as compare_router
from tierrank.api.health import router as health_router
from tierrank.api.items import router as items_router
from tierrank.api.sessions import router as sessions_router

__all__ = [
    "collection_router",
    "compare_router",
    "health_router",
    "items_router",
    "sessions_router",
]
