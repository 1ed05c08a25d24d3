"""Configuration via environment variables, config.json, and .env files."""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from vsearch.core.constants import (
    CONFIG_FILE_PATH,
    DEFAULT_API_MAX_RETRIES,
    DEFAULT_CHAT_MODEL,
    DEFAULT_EMBED_MODEL,
    DEFAULT_MAX_CHUNKS_PER_VIDEO,
    DEFAULT_MAX_STALENESS_MS,
    DEFAULT_TRANSCRIBE_CHUNK_SEC,
    DEFAULT_TRANSCRIBE_MODEL,
    INDEX_RELATIVE_PATH,
)


class RankingWeights(BaseModel):
    """Hand-tuned fusion weights for the hybrid ranker."""

    # Stage A: whole-video document
    semantic_weight: float = 0.76
    lexical_weight: float = 0.20
    ready_bonus: float = 0.06
    not_ready_penalty: float = -0.02
    lexical_only_weight: float = 0.88
    lexical_only_bonus_scale: float = 0.5
    min_video_score: float = 0.01
    top_videos: int = 8

    # Stage B: passages
    chunk_semantic_weight: float = 0.8
    chunk_lexical_weight: float = 0.2
    video_blend_weight: float = 0.3
    chunk_blend_weight: float = 0.7
    min_chunk_score: float = 0.02
    max_chunks_per_video: int = DEFAULT_MAX_CHUNKS_PER_VIDEO

    # Diversity
    max_results_per_video: int = 3
    max_results: int = 12

    # Match-reason cutoffs
    strong_semantic: float = 0.65
    direct_keyword: float = 0.5


class ConfidenceThresholds(BaseModel):
    """Cutoffs for reason codes and trust tiers. Scores are on a 0-1 scale."""

    low_top_score: float = 0.42
    weak_cluster: float = 0.36
    weak_overlap: float = 0.18
    limited_coverage: float = 0.45

    low_reason_count: int = 4
    low_top: float = 0.35
    low_mean_top3: float = 0.30
    low_top_with_overlap: tuple[float, float] = (0.45, 0.20)
    low_mean_with_overlap: tuple[float, float] = (0.45, 0.12)

    medium_reason_count: int = 2
    medium_top: float = 0.62
    medium_overlap: float = 0.26

    # Observability score blend: top, mean top-3, overlap, coverage
    score_weights: tuple[float, float, float, float] = (0.5, 0.25, 0.15, 0.1)


_FILE_KEYS = (
    "provider",
    "api_base_url",
    "api_key",
    "api_max_retries",
    "transcribe_model",
    "embed_model",
    "chat_model",
    "library_root",
    "index_path",
    "video_public_base_url",
    "video_public_path_mode",
    "video_public_strip_prefix",
    "transcribe_chunk_seconds",
    "ranking",
    "confidence",
)


def _load_config_file() -> dict:
    """Read ~/.config/vsearch/config.json if it exists, return as dict."""
    if not CONFIG_FILE_PATH.exists():
        return {}
    try:
        data = json.loads(CONFIG_FILE_PATH.read_text())
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict) -> Path:
    """Write config dict to ~/.config/vsearch/config.json. Returns the path."""
    CONFIG_FILE_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE_PATH.write_text(json.dumps(data, indent=2) + "\n")
    return CONFIG_FILE_PATH


class VSConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Provider
    provider: str = Field(default="")

    # API
    api_base_url: str = Field(default="https://api.openai.com/v1")
    api_key: str = Field(default="")
    api_max_retries: int = Field(default=DEFAULT_API_MAX_RETRIES)

    # Models (empty string disables the capability)
    transcribe_model: str = Field(default=DEFAULT_TRANSCRIBE_MODEL)
    embed_model: str = Field(default=DEFAULT_EMBED_MODEL)
    chat_model: str = Field(default=DEFAULT_CHAT_MODEL)

    # Library
    library_root: Path = Field(default=Path("."))
    index_path: Path | None = Field(default=None)
    max_staleness_ms: int = Field(default=DEFAULT_MAX_STALENESS_MS)

    # Public playback URLs
    video_public_base_url: str = Field(default="")
    video_public_path_mode: str = Field(default="relative")
    video_public_strip_prefix: str = Field(default="")

    # Ingest
    transcribe_chunk_seconds: int = Field(default=DEFAULT_TRANSCRIBE_CHUNK_SEC)

    # Tunables
    ranking: RankingWeights = Field(default_factory=RankingWeights)
    confidence: ConfidenceThresholds = Field(default_factory=ConfidenceThresholds)

    @property
    def resolved_index_path(self) -> Path:
        if self.index_path is not None:
            return self.index_path
        return self.library_root / INDEX_RELATIVE_PATH


def get_config(library_root: Path | None = None) -> VSConfig:
    """Create config with priority: env vars > config.json > defaults."""
    file_data = _load_config_file()

    # Build init kwargs from config.json values, but skip keys where an env var is set
    # (env vars should always win, and pydantic treats __init__ kwargs as highest priority)
    init_kwargs: dict = {}
    for key in _FILE_KEYS:
        env_name = f"VS_{key.upper()}"
        env_set = env_name in os.environ or any(k.startswith(f"{env_name}__") for k in os.environ)
        if key in file_data and not env_set:
            init_kwargs[key] = file_data[key]

    config = VSConfig(**init_kwargs)

    if library_root is not None:
        config.library_root = library_root
    return config
