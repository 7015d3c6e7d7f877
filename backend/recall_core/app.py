"""FastAPI application setup for recall-core."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from recall_core.api.dependencies import get_orchestrator, shutdown_services
from recall_core.api.routes_admin import router as admin_router
from recall_core.api.routes_ingest import router as ingest_router
from recall_core.api.routes_query import router as query_router
from recall_core.core.errors import ConfigurationError, RecallError
from recall_core.core.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="recall-core",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5174",
        "http://localhost:5174",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ingest_router, prefix="/ingest", tags=["ingest"])
app.include_router(query_router, prefix="", tags=["query"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(RecallError)
async def recall_error_handler(request: Request, exc: RecallError) -> JSONResponse:
    status_code = 503 if isinstance(exc, ConfigurationError) else 500
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


@app.on_event("startup")
async def startup() -> None:
    """Warm up the embedding engine, index store and orchestrator."""
    try:
        await get_orchestrator()
    except ConfigurationError as exc:
        logger.warning("Embedding engine not configured; retrieval routes will return 503: %s", exc)


@app.on_event("shutdown")
async def shutdown() -> None:
    await shutdown_services()
