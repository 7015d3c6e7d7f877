"""Test fixtures for recall-core."""

from __future__ import annotations

import asyncio
import re
import sys
import zlib
from pathlib import Path
from typing import Iterator, Mapping, Sequence

import numpy as np
import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

FAKE_DIM = 64
_WORD_RE = re.compile(r"\w+")


class HashTokenizer:
    """Word-level tokenizer with stable ids in ``[1, FAKE_DIM)``; 0 is padding."""

    def encode(self, text: str) -> list[int]:
        return [zlib.crc32(word.encode("utf-8")) % (FAKE_DIM - 1) + 1 for word in _WORD_RE.findall(text.lower())]


class BagOfTokensModel:
    """Rank-3 model whose hidden state for token ``t`` is the one-hot of ``t``.

    Mean pooling therefore yields a bag-of-words vector, so cosine similarity
    tracks shared vocabulary.
    """

    input_names = ("input_ids", "attention_mask")
    output_names = ("last_hidden_state",)

    def __init__(self) -> None:
        self.calls = 0

    def run(self, feeds: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        self.calls += 1
        ids = np.asarray(feeds["input_ids"])[0]
        hidden = np.zeros((1, ids.shape[0], FAKE_DIM), dtype=np.float32)
        hidden[0, np.arange(ids.shape[0]), ids % FAKE_DIM] = 1.0
        return {"last_hidden_state": hidden}


class StaticModel:
    """Model returning a fixed set of outputs regardless of feeds."""

    def __init__(
        self,
        outputs: Mapping[str, np.ndarray],
        input_names: Sequence[str] = ("input_ids", "attention_mask"),
    ) -> None:
        self.input_names = tuple(input_names)
        self.output_names = tuple(outputs)
        self._outputs = dict(outputs)
        self.feeds: list[Mapping[str, np.ndarray]] = []

    def run(self, feeds: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        self.feeds.append(feeds)
        return dict(self._outputs)


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("RECALL_DB_PATH", str(tmp_path / "recall.db"))
    monkeypatch.delenv("RECALL_CONFIG", raising=False)

    from recall_core.api import dependencies as deps

    deps.reset_services()
    yield
    deps.reset_services()


@pytest.fixture
def tokenizer() -> HashTokenizer:
    return HashTokenizer()


@pytest.fixture
def model() -> BagOfTokensModel:
    return BagOfTokensModel()


@pytest.fixture
def engine(model: BagOfTokensModel, tokenizer: HashTokenizer):
    from recall_core.embedding.engine import EmbeddingEngine

    return EmbeddingEngine(model, tokenizer, seq_len=128, store_dim=FAKE_DIM)


@pytest.fixture
def store(engine, tmp_path: Path):
    """Index store on a fresh database; usable from any event loop."""
    from recall_core.retrieval.store import SQLiteIndexStore

    index_store = asyncio.run(SQLiteIndexStore.open(tmp_path / "index.db", engine))
    yield index_store
    asyncio.run(index_store.close())


@pytest.fixture(scope="session")
def sample_text() -> str:
    return "Title\n\nParagraph one.\n\nParagraph two is here."
