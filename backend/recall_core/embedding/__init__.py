"""Embedding inference components."""

from .engine import EmbeddingEngine, ModelHandle, TokenizerAdapter
from .halfprec import half_bits_to_float32, to_float32
from .io_spec import ModelIOSpec, resolve_io_spec
from .pooling import PoolingStrategy, TokenEncoding, encode_tokens, l2_normalize, pool_tokens

__all__ = [
    "EmbeddingEngine",
    "ModelHandle",
    "TokenizerAdapter",
    "ModelIOSpec",
    "resolve_io_spec",
    "PoolingStrategy",
    "TokenEncoding",
    "encode_tokens",
    "pool_tokens",
    "l2_normalize",
    "half_bits_to_float32",
    "to_float32",
]
