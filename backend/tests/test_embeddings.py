"""Tests for the embedding engine."""

from __future__ import annotations

import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from conftest import FAKE_DIM, StaticModel
from recall_core.core.errors import (
    DimensionError,
    InferenceError,
    OutputMissingError,
    TokenizationError,
)
from recall_core.embedding.engine import EmbeddingEngine


def _norm(vector: list[float]) -> float:
    return math.sqrt(sum(value * value for value in vector))


def test_embed_is_unit_length(engine: EmbeddingEngine) -> None:
    vector = engine.embed("The midterm covers chapters one through five")
    assert len(vector) == FAKE_DIM
    assert abs(_norm(vector) - 1.0) < 1e-4


def test_shared_vocabulary_scores_higher(engine: EmbeddingEngine) -> None:
    query = np.array(engine.embed("midterm exam"))
    related = np.array(engine.embed("the midterm exam is on friday"))
    unrelated = np.array(engine.embed("internship application resume"))
    assert float(query @ related) > float(query @ unrelated)


def test_feeds_are_padded_int32(tokenizer) -> None:
    model = StaticModel({"last_hidden_state": np.ones((1, 6, 4), dtype=np.float32)})
    engine = EmbeddingEngine(model, tokenizer, seq_len=6, store_dim=4, warmup=False)
    engine.embed("two words")
    feeds = model.feeds[-1]
    assert feeds["input_ids"].dtype == np.int32
    assert feeds["input_ids"].shape == (1, 6)
    assert feeds["attention_mask"].tolist() == [[1, 1, 0, 0, 0, 0]]


def test_long_input_is_truncated(tokenizer) -> None:
    model = StaticModel({"last_hidden_state": np.ones((1, 4, 4), dtype=np.float32)})
    engine = EmbeddingEngine(model, tokenizer, seq_len=4, store_dim=4, warmup=False)
    engine.embed("one two three four five six seven")
    assert model.feeds[-1]["attention_mask"].tolist() == [[1, 1, 1, 1]]


def test_rank_two_output_is_cut_to_store_dim(tokenizer) -> None:
    model = StaticModel({"pooled_output": np.arange(1, 11, dtype=np.float32).reshape(1, 10)})
    engine = EmbeddingEngine(model, tokenizer, seq_len=8, store_dim=4, warmup=False)
    vector = engine.embed("hello")
    expected = np.array([1.0, 2.0, 3.0, 4.0]) / math.sqrt(30.0)
    assert vector == pytest.approx(expected.tolist(), abs=1e-6)


def test_narrow_output_keeps_its_width(tokenizer) -> None:
    model = StaticModel({"pooled_output": np.array([[0.0, 3.0, 4.0]], dtype=np.float32)})
    engine = EmbeddingEngine(model, tokenizer, seq_len=8, store_dim=512, warmup=False)
    assert engine.embed("hello") == pytest.approx([0.0, 0.6, 0.8])


def test_rank_three_output_uses_masked_mean(tokenizer) -> None:
    hidden = np.zeros((1, 8, 2), dtype=np.float32)
    hidden[0, 0] = [1.0, 0.0]
    hidden[0, 1] = [0.0, 1.0]
    hidden[0, 2:] = [100.0, 0.0]
    model = StaticModel({"last_hidden_state": hidden})
    engine = EmbeddingEngine(model, tokenizer, seq_len=8, store_dim=2, warmup=False)
    vector = engine.embed("two tokens")
    assert vector == pytest.approx([math.sqrt(0.5), math.sqrt(0.5)], abs=1e-6)


def test_half_precision_output(tokenizer) -> None:
    model = StaticModel({"pooled_output": np.array([[3.0, 4.0]], dtype=np.float16)})
    engine = EmbeddingEngine(model, tokenizer, seq_len=8, store_dim=2, warmup=False)
    assert engine.embed("hello") == pytest.approx([0.6, 0.8], abs=1e-6)


def test_missing_output_lists_available_names(tokenizer) -> None:
    model = StaticModel({"last_hidden_state": np.ones((1, 4, 2), dtype=np.float32)})
    engine = EmbeddingEngine(model, tokenizer, seq_len=4, store_dim=2, output_name="var_3996", warmup=False)
    with pytest.raises(OutputMissingError) as excinfo:
        engine.embed("hello")
    assert excinfo.value.output == "var_3996"
    assert str(excinfo.value) == "Output 'var_3996' not found. Available: [last_hidden_state]"
    assert isinstance(excinfo.value, InferenceError)


def test_rank_four_output_is_rejected(tokenizer) -> None:
    model = StaticModel({"last_hidden_state": np.ones((1, 2, 2, 2), dtype=np.float32)})
    engine = EmbeddingEngine(model, tokenizer, seq_len=2, store_dim=2, warmup=False)
    with pytest.raises(DimensionError):
        engine.embed("hello")


def test_model_failure_becomes_inference_error(tokenizer) -> None:
    class Exploding(StaticModel):
        def run(self, feeds):
            raise RuntimeError("device lost")

    engine = EmbeddingEngine(Exploding({"last_hidden_state": np.ones(1)}), tokenizer, warmup=False)
    with pytest.raises(InferenceError) as excinfo:
        engine.embed("hello")
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_tokenizer_failure_becomes_tokenization_error() -> None:
    class BrokenTokenizer:
        def encode(self, text: str):
            raise ValueError("bad vocab")

    model = StaticModel({"last_hidden_state": np.ones((1, 4, 2), dtype=np.float32)})
    engine = EmbeddingEngine(model, BrokenTokenizer(), seq_len=4, store_dim=2, warmup=False)
    with pytest.raises(TokenizationError):
        engine.embed("hello")


def test_warmup_failure_is_not_fatal(tokenizer, caplog: pytest.LogCaptureFixture) -> None:
    model = StaticModel({"last_hidden_state": np.ones((1, 2, 2, 2), dtype=np.float32)})
    with caplog.at_level("WARNING", logger="recall_core"):
        engine = EmbeddingEngine(model, tokenizer, seq_len=2, store_dim=2)
    assert engine.io_spec.output == "last_hidden_state"
    assert "warmup failed" in caplog.text


def test_embed_batch_preserves_order(engine: EmbeddingEngine) -> None:
    texts = ["alpha", "beta gamma"]
    assert engine.embed_batch(texts) == [engine.embed(text) for text in texts]


def test_model_calls_are_serialized(tokenizer) -> None:
    class Reentrancy(StaticModel):
        active = 0
        overlapped = False

        def run(self, feeds):
            type(self).active += 1
            if type(self).active > 1:
                type(self).overlapped = True
            time.sleep(0.002)
            type(self).active -= 1
            return super().run(feeds)

    model = Reentrancy({"pooled_output": np.ones((1, 4), dtype=np.float32)})
    engine = EmbeddingEngine(model, tokenizer, seq_len=4, store_dim=4, warmup=False)
    barrier = threading.Barrier(4)

    def worker(index: int) -> list[float]:
        barrier.wait()
        return engine.embed(f"text {index}")

    with ThreadPoolExecutor(max_workers=4) as pool:
        vectors = list(pool.map(worker, range(4)))
    assert len(vectors) == 4
    assert Reentrancy.overlapped is False
