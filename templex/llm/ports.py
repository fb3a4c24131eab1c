"""Port interfaces for the completion layer. Other modules depend on these, not on implementations."""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from templex.llm.types import LLMRequest, LLMResponse


@runtime_checkable
class LLMClientPort(Protocol):
    """Low-level, provider-agnostic completion. Used by LLMService."""

    async def acompletion(
        self,
        model: str,
        req: LLMRequest,
        *,
        timeout_s: float | None = None,
        api_base: str | None = None,
        api_key: str | None = None,
    ) -> LLMResponse:
        """Execute one completion for the given model. Raises LLMError on failure."""
        ...


@runtime_checkable
class CompletionProvider(Protocol):
    """Opaque text source the extractor talks to. The returned text is untrusted."""

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return the raw completion text. Raises LLMError on provider failure."""
        ...
