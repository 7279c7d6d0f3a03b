"""FastAPI application exposing one sync run as an HTTP trigger."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from drive_sync.config import settings
from drive_sync.errors import ConfigurationError
from drive_sync.models import RunStatus
from drive_sync.pipeline import SyncPipeline, build_pipeline

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_pipeline() -> SyncPipeline:
    """Build the pipeline from the process settings on first use."""
    return build_pipeline(settings)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(level=settings.log_level.upper())
    yield


app = FastAPI(
    title="Drive Index Sync",
    version="0.1.0",
    description="Synchronise a Google Drive folder into a vector search index.",
    lifespan=lifespan,
)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Refusing to run sync: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "status": RunStatus.FAILED.value,
            "errors": [{"kind": exc.kind, "message": str(exc), "missing": exc.missing}],
        },
    )


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/sync")
def sync(pipeline: SyncPipeline = Depends(get_pipeline)) -> JSONResponse:
    """Run one synchronisation and return its summary.

    Responds 200 when the run completed (with or without per-item errors)
    and 500 only when the run as a whole failed.
    """
    summary = pipeline.run()
    status_code = 500 if summary.status is RunStatus.FAILED else 200
    return JSONResponse(status_code=status_code, content=summary.to_response())
