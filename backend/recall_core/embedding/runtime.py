"""Concrete model and tokenizer adapters backed by ONNX Runtime and HF tokenizers."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

import numpy as np
import onnxruntime as ort
from tokenizers import Tokenizer

from recall_core.core.config import Settings
from recall_core.core.errors import ConfigurationError
from recall_core.core.logging import get_logger
from recall_core.embedding.engine import EmbeddingEngine

logger = get_logger(__name__)

_ONNX_INTEGER_TYPES: Mapping[str, type[np.integer]] = {
    "tensor(int64)": np.int64,
    "tensor(int32)": np.int32,
}


class OnnxModel:
    """``ModelHandle`` over an ``onnxruntime.InferenceSession``."""

    def __init__(self, model_path: Path, providers: Sequence[str] = ("CPUExecutionProvider",)) -> None:
        self.model_path = model_path
        self._session = ort.InferenceSession(str(model_path), providers=list(providers))
        self._input_types = {item.name: item.type for item in self._session.get_inputs()}
        self._output_names = [item.name for item in self._session.get_outputs()]

    @property
    def input_names(self) -> list[str]:
        return list(self._input_types)

    @property
    def output_names(self) -> list[str]:
        return list(self._output_names)

    def run(self, feeds: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        cast = {
            name: value.astype(_ONNX_INTEGER_TYPES.get(self._input_types.get(name, ""), value.dtype), copy=False)
            for name, value in feeds.items()
        }
        values = self._session.run(self._output_names, cast)
        return dict(zip(self._output_names, values))


class HFTokenizer:
    """``TokenizerAdapter`` over a Hugging Face ``tokenizer.json``."""

    def __init__(self, tokenizer_path: Path) -> None:
        path = tokenizer_path / "tokenizer.json" if tokenizer_path.is_dir() else tokenizer_path
        self._tokenizer = Tokenizer.from_file(str(path))
        # padding and truncation happen in the engine
        self._tokenizer.no_padding()
        self._tokenizer.no_truncation()

    def encode(self, text: str) -> list[int]:
        return list(self._tokenizer.encode(text).ids)


def load_engine(settings: Settings) -> EmbeddingEngine:
    """Build the embedding engine described by ``settings`` (blocking)."""
    if settings.model_path is None or settings.tokenizer_path is None:
        raise ConfigurationError("model_path and tokenizer_path must both be configured")
    for label, path in (("model", settings.model_path), ("tokenizer", settings.tokenizer_path)):
        if not path.exists():
            raise ConfigurationError(f"Missing {label} at {path}")
    logger.info("Loading embedding model %s", settings.model_path)
    try:
        model = OnnxModel(settings.model_path, providers=[settings.execution_provider])
        tokenizer = HFTokenizer(settings.tokenizer_path)
    except Exception as exc:
        raise ConfigurationError(f"Failed to load embedding assets: {exc}") from exc
    return EmbeddingEngine(
        model,
        tokenizer,
        seq_len=settings.seq_len,
        store_dim=settings.store_dim,
        pooling=settings.pooling,
        input_ids_name=settings.input_ids_name,
        attention_mask_name=settings.attention_mask_name,
        output_name=settings.output_name,
    )


__all__ = ["OnnxModel", "HFTokenizer", "load_engine"]
