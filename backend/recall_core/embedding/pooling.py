"""Token encoding, sequence pooling and normalization helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

NORM_FLOOR = 1e-12


class PoolingStrategy(str, Enum):
    MEAN = "mean"
    FIRST = "first"
    LAST = "last"


@dataclass(frozen=True, slots=True)
class TokenEncoding:
    """Fixed-length ids and attention mask fed to the model."""

    ids: tuple[int, ...]
    mask: tuple[int, ...]


def encode_tokens(token_ids: Sequence[int], seq_len: int) -> TokenEncoding:
    """Truncate or right-pad ``token_ids`` to exactly ``seq_len`` positions."""
    ids = [int(token) for token in token_ids[:seq_len]]
    mask = [1] * len(ids)
    padding = seq_len - len(ids)
    if padding > 0:
        ids.extend([0] * padding)
        mask.extend([0] * padding)
    return TokenEncoding(ids=tuple(ids), mask=tuple(mask))


def pool_tokens(tokens: np.ndarray, mask: Sequence[int], strategy: PoolingStrategy) -> np.ndarray:
    """Reduce a ``[seq, dim]`` matrix of token vectors to one ``[dim]`` vector.

    Positions past the end of ``mask`` are treated as real tokens.
    """
    seq = tokens.shape[0]
    if strategy is PoolingStrategy.MEAN:
        keep = [t for t in range(seq) if t >= len(mask) or mask[t] != 0]
        if not keep:
            return tokens[0].copy()
        return tokens[keep].mean(axis=0)
    if strategy is PoolingStrategy.FIRST:
        idx = next((i for i, bit in enumerate(mask) if bit != 0), 0)
        return tokens[min(idx, seq - 1)].copy()
    if strategy is PoolingStrategy.LAST:
        idx = next((i for i in range(len(mask) - 1, -1, -1) if mask[i] != 0), seq - 1)
        return tokens[min(max(idx, 0), seq - 1)].copy()
    raise ValueError(f"Unknown pooling strategy {strategy!r}")


def l2_normalize(vector: np.ndarray) -> list[float]:
    """Scale to unit length; an all-zero vector comes back unchanged."""
    values = np.asarray(vector, dtype=np.float32)
    sum_sq = float(np.sum(np.square(values, dtype=np.float64)))
    norm = math.sqrt(max(sum_sq, NORM_FLOOR))
    return (values / np.float32(norm)).tolist()


__all__ = [
    "NORM_FLOOR",
    "PoolingStrategy",
    "TokenEncoding",
    "encode_tokens",
    "pool_tokens",
    "l2_normalize",
]
