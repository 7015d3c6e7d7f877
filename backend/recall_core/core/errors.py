"""Typed failures raised by the embedding and retrieval layers."""

from __future__ import annotations

from typing import Sequence


class RecallError(Exception):
    """Base class for every failure surfaced by recall-core."""


class ConfigurationError(RecallError):
    """Engine or service cannot be built from the supplied configuration."""


class TokenizationError(RecallError):
    """Tokenizer adapter failed to encode input text."""


class InferenceError(RecallError):
    """Numeric model invocation failed or produced unusable data."""


class OutputMissingError(InferenceError):
    """Configured output tensor was absent from the model outputs."""

    def __init__(self, output: str, available: Sequence[str]) -> None:
        self.output = output
        self.available = list(available)
        super().__init__(f"Output '{output}' not found. Available: [{', '.join(self.available)}]")


class DimensionError(InferenceError):
    """Model output has a rank the engine cannot reduce to a vector."""


class IngestError(RecallError):
    """Content could not be ingested into the index store."""


class SearchError(RecallError):
    """Index store failed to answer a retrieval query."""


class InvalidTransitionError(RecallError):
    """Document lifecycle was asked to take an edge it does not have."""


class HealthCheckError(RecallError):
    """End-to-end self-check found an inconsistency."""


__all__ = [
    "RecallError",
    "ConfigurationError",
    "TokenizationError",
    "InferenceError",
    "OutputMissingError",
    "DimensionError",
    "IngestError",
    "SearchError",
    "InvalidTransitionError",
    "HealthCheckError",
]
