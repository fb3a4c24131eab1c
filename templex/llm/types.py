"""Completion request and result models shared by the service and the LiteLLM client."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class LLMMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class LLMRequest(BaseModel):
    """One chat completion: the messages plus sampling overrides (None means the settings default)."""

    messages: list[LLMMessage]
    temperature: float | None = None
    max_output_tokens: int | None = None
    # {"type": "json_object"} when the provider should be held to JSON output
    response_format: dict[str, Any] | None = None
    timeout_s: float | None = None


class LLMUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """What came back, whichever provider answered. raw keeps the provider payload for debugging."""

    text: str
    provider: str
    model: str
    latency_ms: int
    finish_reason: str | None = None
    usage: LLMUsage | None = None
    raw: dict[str, Any] | None = None


def provider_from_model(model: str) -> str:
    """LiteLLM model ids are "provider/name"; bare names are OpenAI models."""
    prefix, sep, _ = (model or "").partition("/")
    return prefix.lower() if sep and prefix else "openai"
