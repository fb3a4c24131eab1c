"""Extraction configuration. Invalid values are clamped or defaulted, never rejected."""
from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from templex.extraction.prompt import DEFAULT_LANGUAGE, LANGUAGES
from templex.extraction.schema import ProgressInfo

DEFAULT_MODEL = "gpt-4"
DEFAULT_MAX_DEPTH = 3
MAX_DEPTH_LIMIT = 10
DEFAULT_MIN_CONFIDENCE = 0.7
MAX_OVERLAP_RATIO = 0.9

ProgressCallback = Callable[[ProgressInfo], Any]


def _number(v: Any) -> float | None:
    """Finite number from v (numeric strings included, so env values work), else None."""
    if isinstance(v, bool):
        return None
    if isinstance(v, str):
        try:
            v = float(v)
        except ValueError:
            return None
    if not isinstance(v, (int, float)) or not math.isfinite(v):
        return None
    return v


class ExtractionConfig(BaseModel):
    """Per-extractor settings."""

    model_config = ConfigDict(validate_assignment=True)

    model: str = Field(default=DEFAULT_MODEL, description="Informational model id; the provider decides")
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, description="Analysis depth, clamped to 1..10")
    min_confidence: float = Field(default=DEFAULT_MIN_CONFIDENCE, description="Refinement target, clamped to 0..1")
    extract_patterns: bool = True
    extract_keywords: bool = True
    extract_metadata: bool = True
    language: str = DEFAULT_LANGUAGE
    use_iterative_refinement: bool = False

    @field_validator("model", mode="before")
    @classmethod
    def default_model(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) and v.strip() else DEFAULT_MODEL

    @field_validator("max_depth", mode="before")
    @classmethod
    def clamp_depth(cls, v: Any) -> int:
        if isinstance(v, bool) or not isinstance(v, (int, float)) or math.isnan(v):
            return DEFAULT_MAX_DEPTH
        return max(1, min(MAX_DEPTH_LIMIT, int(v)))

    @field_validator("min_confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        if isinstance(v, bool) or not isinstance(v, (int, float)) or math.isnan(v):
            return DEFAULT_MIN_CONFIDENCE
        return min(1.0, max(0.0, float(v)))

    @field_validator("language", mode="before")
    @classmethod
    def known_language(cls, v: Any) -> str:
        return v if v in LANGUAGES else DEFAULT_LANGUAGE

    @field_validator("extract_patterns", "extract_keywords", "extract_metadata", mode="before")
    @classmethod
    def default_true(cls, v: Any) -> bool:
        return True if v is None else bool(v)

    @field_validator("use_iterative_refinement", mode="before")
    @classmethod
    def default_false(cls, v: Any) -> bool:
        return bool(v)


class ChunkingSettings(BaseSettings):
    """Fragment processor settings. Env prefix: TEMPLEX_CHUNK_ (e.g. TEMPLEX_CHUNK_CHUNK_SIZE)."""

    model_config = SettingsConfigDict(
        env_prefix="TEMPLEX_CHUNK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    chunk_size: int = Field(default=2000, ge=1, description="Target fragment size in characters")
    overlap_size: int = Field(default=200, ge=0, description="Characters carried over from the previous fragment")
    max_retries: int = Field(default=3, ge=0, description="Retries per fragment for timeouts/retryable errors")
    timeout_s: float = Field(default=30.0, gt=0, description="Per-fragment completion timeout")
    concurrency: int = Field(default=4, ge=1, description="Fragments analyzed at once")

    @field_validator("chunk_size", "concurrency", mode="before")
    @classmethod
    def at_least_one(cls, v: Any, info: ValidationInfo) -> int:
        n = _number(v)
        return cls.model_fields[info.field_name].default if n is None else max(1, int(n))

    @field_validator("overlap_size", "max_retries", mode="before")
    @classmethod
    def non_negative(cls, v: Any, info: ValidationInfo) -> int:
        n = _number(v)
        return cls.model_fields[info.field_name].default if n is None else max(0, int(n))

    @field_validator("timeout_s", mode="before")
    @classmethod
    def positive_timeout(cls, v: Any, info: ValidationInfo) -> float:
        n = _number(v)
        return cls.model_fields[info.field_name].default if n is None or n <= 0 else float(n)


class ExtractionOptions(BaseModel):
    """Per-call overrides. Unset fields fall back to ChunkingSettings."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    chunk_size: int | None = Field(default=None, ge=1)
    overlap_ratio: float | None = Field(default=None, ge=0.0, lt=1.0, description="Overlap as a fraction of chunk_size")
    timeout_s: float | None = Field(default=None, gt=0)
    retries: int | None = Field(default=None, ge=0)
    verbose: bool = False
    on_progress: ProgressCallback | None = None

    # Out-of-range overrides are clamped; unusable ones mean "not set"
    @field_validator("chunk_size", mode="before")
    @classmethod
    def clamp_chunk_size(cls, v: Any) -> int | None:
        n = _number(v)
        return None if n is None else max(1, int(n))

    @field_validator("overlap_ratio", mode="before")
    @classmethod
    def clamp_overlap_ratio(cls, v: Any) -> float | None:
        n = _number(v)
        return None if n is None else min(MAX_OVERLAP_RATIO, max(0.0, float(n)))

    @field_validator("timeout_s", mode="before")
    @classmethod
    def positive_timeout(cls, v: Any) -> float | None:
        n = _number(v)
        return None if n is None or n <= 0 else float(n)

    @field_validator("retries", mode="before")
    @classmethod
    def clamp_retries(cls, v: Any) -> int | None:
        n = _number(v)
        return None if n is None else max(0, int(n))

    def resolve(self, settings: ChunkingSettings) -> ChunkingSettings:
        """Settings for one call with these overrides applied."""
        chunk_size = self.chunk_size or settings.chunk_size
        if self.overlap_ratio is not None:
            overlap = int(chunk_size * self.overlap_ratio)
        else:
            overlap = settings.overlap_size
        return settings.model_copy(
            update={
                "chunk_size": chunk_size,
                "overlap_size": min(overlap, chunk_size - 1),
                "timeout_s": self.timeout_s or settings.timeout_s,
                "max_retries": settings.max_retries if self.retries is None else self.retries,
            }
        )
