"""API integration tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from recall_core.api import dependencies as deps
from recall_core.app import app
from recall_core.tools.search_rag import SearchRagTool


@pytest.fixture
def client(engine, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(deps, "load_engine", lambda settings: engine)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unconfigured_client() -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


EMAILS = {
    "source_id": "email:inbox",
    "name": "Inbox",
    "messages": [
        {
            "subject": "Lab opportunity",
            "from": "prof@university.edu",
            "to": ["alex@school.edu"],
            "date": "2025-09-24T09:00:00Z",
            "body": "Openings in the zanzibar research group.",
        },
        {
            "subject": "CS 101 Midterm Details",
            "from": "ta@school.edu",
            "to": ["alex@school.edu"],
            "cc": ["prof@university.edu"],
            "date": "2025-09-28T09:00:00Z",
            "body": "Midterm covers chapters one to five.",
        },
    ],
}

SCHEDULE = {
    "source_id": "schedule:week",
    "events": [
        {"title": "CS 101 Lecture", "start": "2025-10-01T09:00:00Z", "end": "2025-10-01T10:00:00Z"},
        {"title": "Career Fair", "start": "2025-10-03T12:00:00Z", "end": "2025-10-03T15:00:00Z", "location": "Gym"},
    ],
}


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "ready": True, "error_state": "none"}


def test_ingest_and_search_flow(tmp_path: Path, client: TestClient) -> None:
    sample = tmp_path / "sample.md"
    sample.write_text("# Sample\n\nThis is a sample document about retrieval.", encoding="utf-8")

    file_resp = client.post("/ingest/file", json={"path": str(sample)})
    assert file_resp.status_code == 200
    assert file_resp.json()["chunks"] >= 1

    text_resp = client.post("/ingest/text", json={"text": "Groceries: eggs, milk, bread."})
    assert text_resp.status_code == 200
    assert text_resp.json()["units"] == len("Groceries: eggs, milk, bread.")

    emails_resp = client.post("/ingest/emails", json=EMAILS)
    assert emails_resp.status_code == 200
    assert emails_resp.json()["units"] == 2

    schedule_resp = client.post("/ingest/schedule", json=SCHEDULE)
    assert schedule_resp.status_code == 200
    assert schedule_resp.json()["units"] == 2

    search_resp = client.post(
        "/search",
        json={"query": "zanzibar", "k": 3, "mode": {"type": "hybrid", "expand": 0, "bm25_weight": 0.6}},
    )
    assert search_resp.status_code == 200
    results = search_resp.json()["results"]
    assert results, "Expected at least one result"
    assert results[0]["source_id"] == "email:inbox"

    documents = client.get("/documents").json()
    assert {doc["id"] for doc in documents} >= {"email:inbox", "schedule:week"}
    assert all(doc["status"] == "completed" for doc in documents)

    detail = client.get("/documents/email:inbox")
    assert detail.status_code == 200
    assert detail.json()["title"] == "Inbox"
    assert client.get("/documents/email:nope").status_code == 404


def test_missing_file_is_not_found(client: TestClient, tmp_path: Path) -> None:
    resp = client.post("/ingest/file", json={"path": str(tmp_path / "absent.md")})
    assert resp.status_code == 404


def test_empty_batches(client: TestClient) -> None:
    resp = client.post("/ingest/emails", json={"source_id": "email:none", "messages": []})
    assert resp.json() == {"units": 0, "chunks": 0}


def test_blank_search_returns_nothing(client: TestClient) -> None:
    resp = client.post("/search", json={"query": "   "})
    assert resp.status_code == 200
    assert resp.json() == {"results": []}


def test_tools(client: TestClient) -> None:
    tools = client.get("/tools").json()
    assert tools == [SearchRagTool.definition()]

    client.post("/ingest/emails", json=EMAILS)
    client.post("/ingest/schedule", json=SCHEDULE)
    client.post("/ingest/text", json={"text": "Weekend hiking trip.", "name": "Trip"})
    resp = client.post("/tools/search_rag", json={"query": "midterm chapters", "mode": "keyword"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload[0]["sourceId"] == "email:inbox"
    assert payload[0]["cosine"] is None

    invalid = client.post("/tools/search_rag", json={"query": "x", "top_k": 99})
    assert invalid.status_code == 422


def test_deep_health(client: TestClient) -> None:
    resp = client.get("/health/deep")
    assert resp.status_code == 200
    report = resp.json()
    assert report["ok"] is True, report
    assert report["error"] is None
    assert report["steps"][-1] == "Health check complete."


def test_metrics(client: TestClient) -> None:
    client.post("/search", json={"query": "anything"})
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "recall_searches_total" in resp.text


def test_unconfigured_engine_returns_service_unavailable(unconfigured_client: TestClient) -> None:
    health = unconfigured_client.get("/health").json()
    assert health["ready"] is False

    resp = unconfigured_client.post("/ingest/text", json={"text": "hello"})
    assert resp.status_code == 503
    assert resp.json()["error"] == "ConfigurationError"


def test_search_rejects_out_of_range_weights(client: TestClient) -> None:
    nan_body = '{"query": "midterm", "mode": {"type": "hybrid", "bm25_weight": NaN}}'
    resp = client.post("/search", content=nan_body, headers={"content-type": "application/json"})
    assert resp.status_code == 422

    resp = client.post("/search", json={"query": "midterm", "mode": {"type": "hybrid", "bm25_weight": 1.5}})
    assert resp.status_code == 422
