"""Tests for token pooling and normalization."""

from __future__ import annotations

import math

import numpy as np
import pytest

from recall_core.embedding.pooling import (
    PoolingStrategy,
    encode_tokens,
    l2_normalize,
    pool_tokens,
)


def test_mean_pooling_uses_only_unmasked_positions() -> None:
    tokens = np.arange(8 * 4, dtype=np.float32).reshape(8, 4)
    mask = [1, 1, 0, 0, 0, 0, 0, 0]
    pooled = pool_tokens(tokens, mask, PoolingStrategy.MEAN)
    assert np.allclose(pooled, (tokens[0] + tokens[1]) / 2)
    assert not np.allclose(pooled, tokens.mean(axis=0))


def test_mean_pooling_with_empty_mask_returns_first_token() -> None:
    tokens = np.eye(3, dtype=np.float32)
    pooled = pool_tokens(tokens, [0, 0, 0], PoolingStrategy.MEAN)
    assert np.array_equal(pooled, tokens[0])


def test_first_and_last_pooling() -> None:
    tokens = np.arange(5 * 2, dtype=np.float32).reshape(5, 2)
    mask = [1, 1, 1, 0, 0]
    assert np.array_equal(pool_tokens(tokens, mask, PoolingStrategy.FIRST), tokens[0])
    assert np.array_equal(pool_tokens(tokens, mask, PoolingStrategy.LAST), tokens[2])


def test_last_pooling_clamps_to_output_length() -> None:
    tokens = np.arange(3 * 2, dtype=np.float32).reshape(3, 2)
    pooled = pool_tokens(tokens, [1, 1, 1, 1, 1, 0], PoolingStrategy.LAST)
    assert np.array_equal(pooled, tokens[2])


@pytest.mark.parametrize(
    "strategy, expected",
    [(PoolingStrategy.FIRST, 0), (PoolingStrategy.LAST, 3)],
)
def test_first_and_last_pooling_with_empty_mask(strategy: PoolingStrategy, expected: int) -> None:
    tokens = np.arange(4 * 2, dtype=np.float32).reshape(4, 2)
    assert np.array_equal(pool_tokens(tokens, [0, 0, 0, 0], strategy), tokens[expected])


def test_encode_tokens_pads_and_truncates() -> None:
    padded = encode_tokens([5, 6], 4)
    assert padded.ids == (5, 6, 0, 0)
    assert padded.mask == (1, 1, 0, 0)
    truncated = encode_tokens(list(range(1, 10)), 3)
    assert truncated.ids == (1, 2, 3)
    assert truncated.mask == (1, 1, 1)


def test_l2_normalize_unit_length() -> None:
    vector = l2_normalize(np.array([3.0, 4.0], dtype=np.float32))
    assert vector == pytest.approx([0.6, 0.8])
    assert math.isclose(math.sqrt(sum(v * v for v in vector)), 1.0, abs_tol=1e-6)


def test_l2_normalize_zero_vector_stays_finite() -> None:
    vector = l2_normalize(np.zeros(4, dtype=np.float32))
    assert vector == [0.0, 0.0, 0.0, 0.0]
