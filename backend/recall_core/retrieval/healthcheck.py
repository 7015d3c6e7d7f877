"""End-to-end self-check: ingest samples, verify rows, embeddings and search."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from recall_core.core.errors import HealthCheckError, RecallError
from recall_core.core.logging import get_logger, log_context
from recall_core.ingest.formatter import CalendarEvent, EmailMessage
from recall_core.retrieval.modes import Hybrid, WithContext
from recall_core.retrieval.orchestrator import RetrievalOrchestrator
from recall_core.retrieval.store import SQLiteIndexStore
from recall_core.utils.hashing import text_source_id

logger = get_logger(__name__)

SAMPLE_NOTE = "This is a sample note about CS 101 midterm on Oct 20."
SAMPLE_NOTE_NAME = "Health Check Note"
EMAIL_SOURCE_ID = "email:health-check"
SCHEDULE_SOURCE_ID = "schedule:health-check"
DIAGNOSTIC_TEXT = "diagnostic text"
PROBE_QUERY = "CS 101 midterm"


@dataclass(slots=True)
class HealthReport:
    ok: bool = False
    steps: list[str] = field(default_factory=list)
    error: str | None = None

    def log(self, message: str) -> None:
        self.steps.append(message)
        logger.info(message, extra=log_context(check="deep"))

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "steps": list(self.steps), "error": self.error}


def sample_emails(now: datetime) -> list[EmailMessage]:
    return [
        EmailMessage(
            subject="Lab opportunity in NLP",
            sender="prof@university.edu",
            to=("alex@school.edu",),
            date=now - timedelta(days=7),
            body="Hi Alex, we have openings for undergrads this fall.",
            message_id="health-1",
        ),
        EmailMessage(
            subject="CS 101 Midterm Details",
            sender="ta@school.edu",
            to=("alex@school.edu",),
            date=now - timedelta(days=3),
            body="Midterm is on Oct 20, covers chapters 1-5.",
            message_id="health-2",
        ),
        EmailMessage(
            subject="Internship application",
            sender="hr@company.com",
            to=("alex@school.edu",),
            date=now,
            body="Please submit your resume and cover letter by Nov 1.",
            message_id="health-3",
        ),
    ]


def sample_events(now: datetime) -> list[CalendarEvent]:
    return [
        CalendarEvent(
            title="CS 101 Lecture",
            start=now + timedelta(hours=1),
            end=now + timedelta(hours=2),
            location="Hall A",
            notes="Room 12",
            uid="health-ev-1",
        ),
        CalendarEvent(
            title="Study Session",
            start=now + timedelta(days=2),
            end=now + timedelta(days=2, minutes=90),
            notes="Midterm review",
            uid="health-ev-2",
        ),
        CalendarEvent(
            title="NLP Lab Info Session",
            start=now + timedelta(days=5),
            end=now + timedelta(days=5, hours=1),
            location="Lab 3",
            notes="With Prof. Smith",
            uid="health-ev-3",
        ),
    ]


async def run_health_check(
    orchestrator: RetrievalOrchestrator,
    store: SQLiteIndexStore,
    store_dim: int,
) -> HealthReport:
    """Run every stage against the live services; never raises."""
    report = HealthReport()
    try:
        await _run(orchestrator, store, store_dim, report)
    except RecallError as exc:
        report.error = str(exc)
        logger.warning("Health check failed", extra=log_context(error=str(exc)))
        return report
    report.ok = True
    report.log("Health check complete.")
    return report


async def _run(
    orchestrator: RetrievalOrchestrator,
    store: SQLiteIndexStore,
    store_dim: int,
    report: HealthReport,
) -> None:
    now = datetime.now(timezone.utc).replace(microsecond=0)

    report.log("Ingesting sample note")
    text_outcome = await orchestrator.import_free_text(SAMPLE_NOTE, name=SAMPLE_NOTE_NAME)
    report.log(f"Text ingestion completed. chars={text_outcome.units} chunks={text_outcome.chunks}")

    report.log("Ingesting sample emails")
    email_outcome = await orchestrator.import_email_batch(
        sample_emails(now), EMAIL_SOURCE_ID, name="Emails (health check)"
    )
    report.log(f"Email ingestion completed. items={email_outcome.units} chunks={email_outcome.chunks}")

    report.log("Ingesting sample schedule")
    schedule_outcome = await orchestrator.import_schedule_batch(
        sample_events(now), SCHEDULE_SOURCE_ID, name="Schedule (health check)"
    )
    report.log(f"Schedule ingestion completed. items={schedule_outcome.units} chunks={schedule_outcome.chunks}")

    expected = text_outcome.chunks + email_outcome.chunks + schedule_outcome.chunks
    found = await store.chunk_count([text_source_id(SAMPLE_NOTE), EMAIL_SOURCE_ID, SCHEDULE_SOURCE_ID])
    if found != expected:
        raise HealthCheckError(f"Chunk count mismatch. Expected {expected}, found {found}")
    report.log("Database verification passed.")

    vector = await store.embed(DIAGNOSTIC_TEXT)
    if not vector or len(vector) > store_dim:
        raise HealthCheckError(f"Unexpected embedding dimensionality: {len(vector)}")
    norm = math.sqrt(sum(value * value for value in vector))
    if abs(norm - 1.0) > 1e-3:
        raise HealthCheckError(f"Embedding is not unit length: norm={norm:.6f}")
    report.log("Embedding model verification passed.")

    context_hits = await orchestrator.search(PROBE_QUERY, top_k=5, mode=WithContext(expand=300))
    hybrid_hits = await orchestrator.search(PROBE_QUERY, top_k=5, mode=Hybrid(expand=0, bm25_weight=0.3))
    if not context_hits:
        raise HealthCheckError("Context search returned no results.")
    if not hybrid_hits:
        raise HealthCheckError("Hybrid search returned no results.")
    if [hit.fused_score for hit in context_hits] == [hit.fused_score for hit in hybrid_hits]:
        raise HealthCheckError("Hybrid scores match context-only scores; embeddings may be inactive.")
    report.log("Retrieval verification passed.")


__all__ = ["HealthReport", "run_health_check", "sample_emails", "sample_events"]
