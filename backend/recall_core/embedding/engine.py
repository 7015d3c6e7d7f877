"""Embedding inference over a black-box numeric model."""

from __future__ import annotations

import threading
import time
from typing import Iterable, Mapping, Protocol, Sequence

import numpy as np

from recall_core.core.errors import (
    DimensionError,
    InferenceError,
    OutputMissingError,
    RecallError,
    TokenizationError,
)
from recall_core.core.logging import get_logger, log_context
from recall_core.core.metrics import EMBED_LATENCY
from recall_core.embedding.halfprec import to_float32
from recall_core.embedding.io_spec import ModelIOSpec, resolve_io_spec
from recall_core.embedding.pooling import (
    PoolingStrategy,
    TokenEncoding,
    encode_tokens,
    l2_normalize,
    pool_tokens,
)

logger = get_logger(__name__)

WARMUP_TEXT = "warmup"


class ModelHandle(Protocol):
    """Named-tensor-in, named-tensor-out inference capability."""

    @property
    def input_names(self) -> Sequence[str]: ...

    @property
    def output_names(self) -> Sequence[str]: ...

    def run(self, feeds: Mapping[str, np.ndarray]) -> Mapping[str, np.ndarray]: ...


class TokenizerAdapter(Protocol):
    def encode(self, text: str) -> Sequence[int]: ...


class EmbeddingEngine:
    """Turn text into L2-normalized vectors of at most ``store_dim`` floats.

    Model calls are serialized through an engine-owned lock; the handle is not
    assumed to be safe for concurrent invocation.
    """

    def __init__(
        self,
        model: ModelHandle,
        tokenizer: TokenizerAdapter,
        seq_len: int = 512,
        store_dim: int = 512,
        pooling: PoolingStrategy | str = PoolingStrategy.MEAN,
        *,
        input_ids_name: str | None = None,
        attention_mask_name: str | None = None,
        output_name: str | None = None,
        warmup: bool = True,
    ) -> None:
        if seq_len < 1 or store_dim < 1:
            raise ValueError("seq_len and store_dim must be positive")
        self._model = model
        self._tokenizer = tokenizer
        self.seq_len = seq_len
        self.store_dim = store_dim
        self.pooling = PoolingStrategy(pooling)
        self.io_spec: ModelIOSpec = resolve_io_spec(
            model.input_names,
            model.output_names,
            input_ids=input_ids_name,
            attention_mask=attention_mask_name,
            output=output_name,
        )
        self._lock = threading.Lock()
        logger.info(
            "Embedding engine resolved tensors",
            extra=log_context(
                input_ids=self.io_spec.input_ids,
                attention_mask=self.io_spec.attention_mask,
                output=self.io_spec.output,
                seq_len=seq_len,
                store_dim=store_dim,
                pooling=self.pooling.value,
            ),
        )
        if warmup:
            self._warmup()

    def embed(self, text: str) -> list[float]:
        encoding = self.tokenize(text)
        ids = np.asarray([encoding.ids], dtype=np.int32)
        mask = np.asarray([encoding.mask], dtype=np.int32)
        feeds = {self.io_spec.input_ids: ids, self.io_spec.attention_mask: mask}

        started = time.perf_counter()
        with self._lock:
            try:
                outputs = self._model.run(feeds)
            except RecallError:
                raise
            except Exception as exc:
                raise InferenceError(f"Model invocation failed: {exc}") from exc
        EMBED_LATENCY.observe(time.perf_counter() - started)

        raw = outputs.get(self.io_spec.output) if outputs is not None else None
        if raw is None:
            raise OutputMissingError(self.io_spec.output, sorted(outputs or {}))

        values = to_float32(raw)
        if values.ndim == 2:
            # [1, dim]
            vector = values[0]
        elif values.ndim == 3:
            # [1, seq, dim]
            vector = pool_tokens(values[0], encoding.mask, self.pooling)
        else:
            raise DimensionError(
                f"Unsupported output rank {list(values.shape)}; expected [1, dim] or [1, seq, dim]"
            )
        return l2_normalize(vector[: self.store_dim])

    def embed_batch(self, texts: Iterable[str]) -> list[list[float]]:
        return [self.embed(text) for text in texts]

    def tokenize(self, text: str) -> TokenEncoding:
        try:
            token_ids = self._tokenizer.encode(text)
        except Exception as exc:
            raise TokenizationError(f"Tokenizer failed: {exc}") from exc
        return encode_tokens(token_ids, self.seq_len)

    def _warmup(self) -> None:
        try:
            self.embed(WARMUP_TEXT)
        except Exception as exc:
            logger.warning("Embedding warmup failed: %s", exc)


__all__ = ["EmbeddingEngine", "ModelHandle", "TokenizerAdapter"]
