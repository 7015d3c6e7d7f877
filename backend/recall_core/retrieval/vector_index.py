"""In-memory cosine index over chunk embeddings."""

from __future__ import annotations

from array import array
from typing import Iterable, Sequence

import numpy as np

from recall_core.db.sqlite import SQLiteDatabase


class VectorIndex:
    """Chunk id -> unit vector map; dot product equals cosine similarity."""

    def __init__(self, dim: int | None = None) -> None:
        self.dim = dim
        self._vectors: dict[str, np.ndarray] = {}

    @property
    def size(self) -> int:
        return len(self._vectors)

    def upsert(self, ids: Sequence[str], vectors: Sequence[Sequence[float]]) -> None:
        if len(ids) != len(vectors):
            raise ValueError("ids and vectors must have the same length")
        for chunk_id, vector in zip(ids, vectors):
            if self.dim is None:
                self.dim = len(vector)
            if len(vector) != self.dim:
                raise ValueError(f"Vector dimension mismatch: {len(vector)} != {self.dim}")
            self._vectors[chunk_id] = np.asarray(vector, dtype=np.float32)

    def remove(self, ids: Iterable[str]) -> None:
        for chunk_id in ids:
            self._vectors.pop(chunk_id, None)

    def scores(self, vector: Sequence[float], ids: Iterable[str]) -> dict[str, float]:
        """Cosine similarity of ``vector`` against each known id in ``ids``."""
        if self.dim is None:
            return {}
        if len(vector) != self.dim:
            raise ValueError("Query vector dimension mismatch")
        query = np.asarray(vector, dtype=np.float32)
        return {
            chunk_id: float(np.dot(self._vectors[chunk_id], query))
            for chunk_id in ids
            if chunk_id in self._vectors
        }

    def rebuild(self, db: SQLiteDatabase) -> None:
        self._vectors = {}
        for row in db.query("SELECT chunk_id, dim, vector FROM embeddings", []):
            floats = array("f")
            floats.frombytes(row["vector"])
            if self.dim is None:
                self.dim = row["dim"]
            if row["dim"] != self.dim:
                continue
            self._vectors[row["chunk_id"]] = np.asarray(floats, dtype=np.float32)


def to_blob(vector: Sequence[float]) -> bytes:
    return array("f", vector).tobytes()


__all__ = ["VectorIndex", "to_blob"]
