"""Configuration models for policies and runtime settings."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from .constants import (
    CONTENT_TIMEOUT_SEC,
    DEFAULT_DB_PATH,
    DEFAULT_KAGGLE_CACHE_DIR,
    MAX_QUERY_LENGTH,
    SAMPLE_CACHE_TTL_SEC,
    SEARCH_CACHE_TTL_SEC,
    SEARCH_TIMEOUT_SEC,
)


class ScoringWeights(BaseModel):
    """Points assigned to each relevance signal. Must total 100."""

    exact_phrase: float = 40.0
    title_words: float = 25.0
    description_words: float = 15.0
    popularity: float = 10.0
    usability: float = 10.0
    download_threshold: float = 1000.0
    vote_threshold: float = 100.0

    @model_validator(mode="after")
    def weights_total_100(self) -> "ScoringWeights":
        total = self.exact_phrase + self.title_words + self.description_words + self.popularity + self.usability
        if abs(total - 100.0) > 1e-6:
            raise ValueError(f"scoring weights must sum to 100, got {total}")
        if self.download_threshold <= 0 or self.vote_threshold <= 0:
            raise ValueError("popularity thresholds must be positive")
        return self


def kaggle_weights() -> ScoringWeights:
    return ScoringWeights()


def huggingface_weights() -> ScoringWeights:
    # The Hub search payload carries neither subtitles nor usability ratings.
    return ScoringWeights(
        exact_phrase=50.0,
        title_words=30.0,
        description_words=0.0,
        popularity=20.0,
        usability=0.0,
    )


class CachePolicy(BaseModel):
    search_ttl_sec: float = SEARCH_CACHE_TTL_SEC
    sample_ttl_sec: float = SAMPLE_CACHE_TTL_SEC
    sweep_divisor: int = 6
    max_entries: int | None = 512
    run_sweeper: bool = True


class FetchPolicy(BaseModel):
    sources: list[str] = Field(default_factory=lambda: ["kaggle", "huggingface"])
    search_timeout_sec: float = SEARCH_TIMEOUT_SEC
    content_timeout_sec: float = CONTENT_TIMEOUT_SEC
    max_query_length: int = MAX_QUERY_LENGTH
    search_limit: int = 5
    sample_row_limit: int = 50
    hf_sample_row_limit: int = 20
    max_file_bytes: int = 10 * 1024 * 1024
    parallel_search: bool = True


class GenerationPolicy(BaseModel):
    use_reference_context: bool = True
    # 0 keeps the single model call per request.
    max_parse_retries: int = 0
    retry_backoff_sec: float = 1.0


class AppPaths(BaseModel):
    db_path: Path = DEFAULT_DB_PATH
    kaggle_cache_dir: Path = DEFAULT_KAGGLE_CACHE_DIR


class AppConfig(BaseModel):
    paths: AppPaths = Field(default_factory=AppPaths)
    cache_policy: CachePolicy = Field(default_factory=CachePolicy)
    fetch_policy: FetchPolicy = Field(default_factory=FetchPolicy)
    generation_policy: GenerationPolicy = Field(default_factory=GenerationPolicy)
    source_weights: dict[str, ScoringWeights] = Field(
        default_factory=lambda: {"kaggle": kaggle_weights(), "huggingface": huggingface_weights()}
    )

    @classmethod
    def from_env(cls) -> "AppConfig":
        config = cls()

        db_path = str(os.getenv("DATAGEN_DB_PATH") or "").strip()
        if db_path:
            config.paths.db_path = Path(db_path)

        cache_dir = str(os.getenv("KAGGLE_CACHE_DIR") or "").strip()
        if cache_dir:
            config.paths.kaggle_cache_dir = Path(cache_dir)

        sources_raw = str(os.getenv("DATAGEN_SOURCES") or "").strip()
        if sources_raw:
            config.fetch_policy.sources = [x.strip().lower() for x in sources_raw.split(",") if x.strip()]

        retries_raw = os.getenv("DATAGEN_MAX_PARSE_RETRIES")
        try:
            if retries_raw:
                config.generation_policy.max_parse_retries = max(0, int(retries_raw))
        except ValueError:
            pass

        return config
