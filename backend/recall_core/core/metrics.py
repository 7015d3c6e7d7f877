"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

EMBED_LATENCY = Histogram(
    "recall_embed_latency_seconds",
    "Latency of a single embedding inference",
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "recall_ingest_duration_seconds",
    "Ingest pipeline duration",
    labelnames=("kind",),
    registry=REGISTRY,
)

SEARCH_COUNT = Counter(
    "recall_searches_total",
    "Retrieval queries by mode and outcome",
    labelnames=("mode", "outcome"),
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "recall_index_chunks",
    "Number of chunks stored in index",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "EMBED_LATENCY",
    "INGEST_DURATION",
    "SEARCH_COUNT",
    "INDEX_SIZE",
    "metrics_response",
]
