import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tierrank.api import (
    collection_router,
    compare_router,
    health_router,
    items_router,
    sessions_router,
)
from tierrank.config import settings
from tierrank.db.database import init_db
from tierrank.models.failure import (
    InvariantViolation,
    KnownError,
    RefusalError,
    create_invariant_failure,
    create_unknown_failure,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("tierrank"),
    lifespan=lifespan,
)

app.include_router(collection_router)
app.include_router(compare_router)
app.include_router(health_router)
app.include_router(items_router)
app.include_router(sessions_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


@app.exception_handler(RefusalError)
async def refusal_handler(_request: Request, exc: RefusalError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


@app.exception_handler(InvariantViolation)
async def invariant_violation_handler(
    request: Request, exc: InvariantViolation
) -> JSONResponse:
    logger.error("Invariant violation on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content=create_invariant_failure(exc).model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unknown_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=create_unknown_failure(exc).model_dump(mode="json"),
    )
