"""Tests for the search_rag tool surface."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from recall_core.retrieval.modes import Hybrid, Keyword, WithContext
from recall_core.retrieval.orchestrator import RetrievalOrchestrator
from recall_core.tools.search_rag import SearchRagArguments, SearchRagTool


def test_defaults() -> None:
    arguments = SearchRagArguments(query="midterm")
    assert arguments.top_k == 5
    assert arguments.mode == "hybrid"
    assert arguments.to_mode() == Hybrid(expand=1, bm25_weight=0.5)


@pytest.mark.parametrize(
    "field, value",
    [("top_k", 0), ("top_k", 26), ("expand", -1), ("expand", 1001), ("bm25_weight", 1.5), ("mode", "fuzzy")],
)
def test_ranges_are_enforced(field: str, value: object) -> None:
    with pytest.raises(ValidationError):
        SearchRagArguments(query="midterm", **{field: value})


def test_modes_translate() -> None:
    assert SearchRagArguments(query="q", mode="keyword", expand=7).to_mode() == Keyword()
    assert SearchRagArguments(query="q", mode="withContext", expand=7).to_mode() == WithContext(expand=7)


def test_definition_exposes_json_schema(store) -> None:
    definition = SearchRagTool(RetrievalOrchestrator(store)).definition()
    assert definition["name"] == "search_rag"
    properties = definition["parameters"]["properties"]
    assert properties["top_k"]["maximum"] == 25
    assert set(properties["mode"]["enum"]) == {"semantic", "keyword", "withContext", "hybrid"}
    assert definition["parameters"]["required"] == ["query"]


@pytest.mark.asyncio
async def test_call_returns_tool_payloads(store) -> None:
    orchestrator = RetrievalOrchestrator(store)
    await orchestrator.import_free_text("The CS 101 midterm is on Oct 20.", name="Note")
    await orchestrator.import_free_text("Dinner reservation at eight.", name="Plans")
    await orchestrator.import_free_text("Gym membership renewal.", name="Admin")
    tool = SearchRagTool(orchestrator)

    payload = await tool.call({"query": "midterm", "top_k": 2, "mode": "hybrid", "bm25_weight": 0.7})
    assert 1 <= len(payload) <= 2
    first = payload[0]
    assert set(first) == {"sourceId", "startPage", "excerpt", "text", "bm25", "cosine", "score"}
    assert first["sourceId"].startswith("text:")
    assert first["startPage"] is None
    assert first["bm25"] > 0.0

    assert await tool.call(SearchRagArguments(query="   ")) == []
