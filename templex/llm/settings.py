"""Completion layer configuration. Env prefix: TEMPLEX_LLM_ (e.g. TEMPLEX_LLM_MODEL)."""
from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """Settings for the LiteLLM client and service. All overridable via TEMPLEX_LLM_* env vars."""

    model_config = SettingsConfigDict(
        env_prefix="TEMPLEX_LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    model: str = Field(default="ollama/llama3.2", description="LiteLLM model id (provider/name)")
    api_base: str | None = Field(default=None, description="Override endpoint, e.g. http://localhost:11434")
    api_key: str | None = Field(default=None, description="API key passed explicitly to LiteLLM")
    concurrency_limit: int = Field(default=8, ge=1, description="Max concurrent completion calls per process")
    default_timeout_s: float = Field(default=30.0, gt=0, description="Default request timeout")
    max_retries: int = Field(
        default=0,
        ge=0,
        description="Client-level retries for retryable errors; fragment retries belong to FragmentProcessor",
    )
    retry_backoff_base_s: float = Field(default=0.5, gt=0, description="Base delay for exponential backoff")
    retry_backoff_max_s: float = Field(default=8.0, gt=0, description="Max backoff delay")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=4000, ge=1)
    json_mode: bool = Field(default=False, description="Request response_format=json_object")
    drop_unsupported_params: bool = Field(
        default=True,
        description="Drop OpenAI params not supported by provider (multi-provider safety)",
    )

    @model_validator(mode="after")
    def validate_model(self) -> "LLMSettings":
        if not (self.model or "").strip():
            raise ValueError("model must be non-empty (set TEMPLEX_LLM_MODEL)")
        if self.retry_backoff_max_s < self.retry_backoff_base_s:
            raise ValueError("retry_backoff_max_s must be >= retry_backoff_base_s")
        return self
