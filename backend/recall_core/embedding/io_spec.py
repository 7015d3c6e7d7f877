"""One-time resolution of the model's input and output tensor names."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from recall_core.core.errors import ConfigurationError

INPUT_IDS_NAMES = ("input_ids",)
ATTENTION_MASK_NAMES = ("attention_mask",)
OUTPUT_NAMES = ("last_hidden_state", "pooled_output")


@dataclass(frozen=True, slots=True)
class ModelIOSpec:
    input_ids: str
    attention_mask: str
    output: str


def resolve_io_spec(
    input_names: Iterable[str],
    output_names: Iterable[str],
    *,
    input_ids: str | None = None,
    attention_mask: str | None = None,
    output: str | None = None,
) -> ModelIOSpec:
    """Pick tensor names by override, conventional name, keyword, then sort order."""
    inputs = sorted(set(input_names))
    outputs = sorted(set(output_names))

    ids_name = input_ids or _pick(
        inputs,
        INPUT_IDS_NAMES,
        lambda name: "input" in name.lower() and "id" in name.lower(),
    )
    if ids_name is None:
        raise ConfigurationError(_describe("input ids", inputs))

    mask_name = attention_mask or _pick(
        inputs,
        ATTENTION_MASK_NAMES,
        lambda name: "mask" in name.lower(),
        exclude=ids_name,
    )
    if mask_name is None:
        raise ConfigurationError(_describe("attention mask", inputs))

    output_name = output or _pick(
        outputs,
        OUTPUT_NAMES,
        lambda name: "output" in name.lower(),
    )
    if output_name is None:
        raise ConfigurationError(_describe("output", outputs))

    return ModelIOSpec(input_ids=ids_name, attention_mask=mask_name, output=output_name)


def _pick(
    names: Sequence[str],
    conventional: Sequence[str],
    keyword_match: Callable[[str], bool],
    exclude: str | None = None,
) -> str | None:
    candidates = [name for name in names if name != exclude]
    for name in conventional:
        if name in candidates:
            return name
    for name in candidates:
        if keyword_match(name):
            return name
    return candidates[0] if candidates else None


def _describe(role: str, names: Sequence[str]) -> str:
    return f"Unable to resolve the {role} tensor name from [{', '.join(names)}]; provide an override"


__all__ = ["ModelIOSpec", "resolve_io_spec"]
