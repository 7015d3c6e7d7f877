"""Float decoding for model output buffers.

Half-precision outputs are widened bit by bit so the result does not depend on
whichever accelerator produced them.
"""

from __future__ import annotations

import numpy as np

from recall_core.core.errors import InferenceError

_HALF_SIGN = 0x8000
_HALF_EXP_MASK = 0x1F
_HALF_MANTISSA_MASK = 0x03FF
_FLOAT_INF_BITS = 0x7F800000
# float32 exponent bias (127) minus float16 exponent bias (15)
_EXP_REBIAS = 112


def half_bits_to_float32(bits: np.ndarray) -> np.ndarray:
    """Widen IEEE-754 binary16 bit patterns to binary32 values.

    ``bits`` holds raw 16-bit patterns (any integer dtype, any shape). The
    result has the same shape and dtype ``float32``.
    """
    h = np.asarray(bits).astype(np.uint32) & 0xFFFF
    sign = (h & _HALF_SIGN) << 16
    exponent = (h >> 10) & _HALF_EXP_MASK
    mantissa = h & _HALF_MANTISSA_MASK

    out = sign.copy()

    normal = (exponent > 0) & (exponent < _HALF_EXP_MASK)
    out[normal] |= ((exponent[normal] + _EXP_REBIAS) << 23) | (mantissa[normal] << 13)

    special = exponent == _HALF_EXP_MASK
    out[special] |= _FLOAT_INF_BITS | (mantissa[special] << 13)

    subnormal = (exponent == 0) & (mantissa != 0)
    if np.any(subnormal):
        m = mantissa[subnormal]
        # value = m * 2**-24; renormalize around the leading set bit p (0..9)
        lead = np.floor(np.log2(m.astype(np.float64))).astype(np.uint32)
        fraction = (m - (np.uint32(1) << lead)) << (np.uint32(23) - lead)
        out[subnormal] |= ((lead + np.uint32(103)) << 23) | fraction

    return out.view(np.float32)


def to_float32(values: np.ndarray) -> np.ndarray:
    """Return a fresh float32 array for a float16/32/64 output buffer."""
    array = np.asarray(values)
    if array.dtype == np.float16:
        return half_bits_to_float32(array.view(np.uint16))
    if array.dtype == np.float32:
        return array.copy()
    if array.dtype == np.float64:
        return array.astype(np.float32)
    raise InferenceError(f"Unsupported output dtype {array.dtype}")


__all__ = ["half_bits_to_float32", "to_float32"]
