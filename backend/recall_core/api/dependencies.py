"""Shared FastAPI dependencies."""

from __future__ import annotations

import asyncio
from functools import lru_cache

from recall_core.core.config import Settings, get_settings
from recall_core.core.once import AsyncOnce
from recall_core.embedding.engine import EmbeddingEngine
from recall_core.embedding.runtime import load_engine
from recall_core.ingest.types import IngestConfig
from recall_core.retrieval.orchestrator import RetrievalOrchestrator
from recall_core.retrieval.store import SQLiteIndexStore
from recall_core.tools.search_rag import SearchRagTool


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def ingest_config_from(settings: Settings) -> IngestConfig:
    return IngestConfig(
        max_tokens_per_chunk=settings.chunk_max_tokens,
        overlap_tokens=settings.chunk_overlap_tokens,
        min_tokens_per_chunk=settings.chunk_min_tokens,
        prefix_titles=settings.prefix_titles,
    )


async def _build_engine() -> EmbeddingEngine:
    return await asyncio.to_thread(load_engine, get_app_settings())


async def _build_store() -> SQLiteIndexStore:
    settings = get_app_settings()
    engine = await _ENGINE.get()
    return await SQLiteIndexStore.open(settings.db_path, engine, excerpt_chars=settings.excerpt_chars)


async def _build_orchestrator() -> RetrievalOrchestrator:
    settings = get_app_settings()
    store = await _STORE.get()
    return RetrievalOrchestrator(store, ingest_config_from(settings), max_top_k=settings.max_top_k)


_ENGINE: AsyncOnce[EmbeddingEngine] = AsyncOnce(_build_engine)
_STORE: AsyncOnce[SQLiteIndexStore] = AsyncOnce(_build_store)
_ORCHESTRATOR: AsyncOnce[RetrievalOrchestrator] = AsyncOnce(_build_orchestrator)


async def get_engine() -> EmbeddingEngine:
    return await _ENGINE.get()


async def get_store() -> SQLiteIndexStore:
    return await _STORE.get()


async def get_orchestrator() -> RetrievalOrchestrator:
    return await _ORCHESTRATOR.get()


async def get_search_tool() -> SearchRagTool:
    return SearchRagTool(await _ORCHESTRATOR.get())


def peek_orchestrator() -> RetrievalOrchestrator | None:
    """Orchestrator if already built; never triggers model loading."""
    return _ORCHESTRATOR.peek()


async def shutdown_services() -> None:
    store = _STORE.peek()
    if store is not None:
        await store.close()
    reset_services()


def reset_services() -> None:
    for once in (_ORCHESTRATOR, _STORE, _ENGINE):
        once.reset()
    get_app_settings.cache_clear()
    get_settings.cache_clear()


__all__ = [
    "get_app_settings",
    "ingest_config_from",
    "get_engine",
    "get_store",
    "get_orchestrator",
    "get_search_tool",
    "peek_orchestrator",
    "shutdown_services",
    "reset_services",
]
