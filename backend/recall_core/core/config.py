"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "RECALL_"
DEFAULT_CONFIG_PATH = Path("~/.config/recall-core/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("embeddings", "model_path"): "model_path",
    ("embeddings", "tokenizer_path"): "tokenizer_path",
    ("embeddings", "seq_len"): "seq_len",
    ("embeddings", "store_dim"): "store_dim",
    ("embeddings", "pooling"): "pooling",
    ("embeddings", "execution_provider"): "execution_provider",
    ("embeddings", "tensors", "input_ids"): "input_ids_name",
    ("embeddings", "tensors", "attention_mask"): "attention_mask_name",
    ("embeddings", "tensors", "output"): "output_name",
    ("chunking", "max_tokens"): "chunk_max_tokens",
    ("chunking", "overlap_tokens"): "chunk_overlap_tokens",
    ("chunking", "min_tokens"): "chunk_min_tokens",
    ("chunking", "prefix_titles"): "prefix_titles",
    ("retrieval", "max_top_k"): "max_top_k",
    ("retrieval", "excerpt_chars"): "excerpt_chars",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".recall-core" / "index.db")
    model_path: Path | None = None
    tokenizer_path: Path | None = None
    seq_len: int = Field(default=512, ge=1)
    store_dim: int = Field(default=512, ge=1)
    pooling: Literal["mean", "first", "last"] = "mean"
    input_ids_name: str | None = None
    attention_mask_name: str | None = None
    output_name: str | None = None
    execution_provider: str = "CPUExecutionProvider"
    max_top_k: int = Field(default=50, ge=1)
    chunk_max_tokens: int = Field(default=1000, ge=1)
    chunk_overlap_tokens: int = Field(default=150, ge=0)
    chunk_min_tokens: int = Field(default=80, ge=0)
    prefix_titles: bool = True
    excerpt_chars: int = Field(default=240, ge=16)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", "model_path", "tokenizer_path", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("paths must be a path or string")

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with RECALL_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
