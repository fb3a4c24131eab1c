"""
LiteLLM-backed CompletionProvider transport: kwargs building, semaphore, per-call timeout,
retries with exponential backoff, and LiteLLM exception -> LLMError mapping.
Unknown exceptions become LLMUnavailable on 5xx / "timeout" text, else LLMError(UNKNOWN).
"""
from __future__ import annotations

import asyncio
import time
from typing import Any

from litellm import acompletion

from templex.llm.errors import (
    LLMAuthError,
    LLMBadRequest,
    LLMError,
    LLMRateLimited,
    LLMTimeout,
    LLMUnavailable,
)
from templex.llm.telemetry import log_llm_call
from templex.llm.types import LLMRequest, LLMResponse, LLMUsage, provider_from_model

# Keyed by type(e).__name__ so the mapping survives litellm.exceptions moving around
_ERRORS_BY_NAME: dict[str, type[LLMError]] = {
    "APITimeoutError": LLMTimeout,
    "Timeout": LLMTimeout,
    "RateLimitError": LLMRateLimited,
    "AuthenticationError": LLMAuthError,
    "PermissionDeniedError": LLMAuthError,
    "BadRequestError": LLMBadRequest,
    "InvalidRequestError": LLMBadRequest,
    "ContextWindowExceededError": LLMBadRequest,
    "ServiceUnavailableError": LLMUnavailable,
    "APIConnectionError": LLMUnavailable,
    "APIError": LLMUnavailable,
    "InternalServerError": LLMUnavailable,
}
_SERVER_ERROR_STATUSES = (500, 502, 503, 504)


def _map_exception(e: Exception, provider: str) -> LLMError:
    """Translate a LiteLLM/provider exception into the LLMError taxonomy."""
    if isinstance(e, LLMError):
        return e
    exc_name = type(e).__name__
    error_cls = LLMTimeout if isinstance(e, asyncio.TimeoutError) else _ERRORS_BY_NAME.get(exc_name)
    if error_cls is None and (
        getattr(e, "status_code", None) in _SERVER_ERROR_STATUSES or "timeout" in str(e).lower()
    ):
        error_cls = LLMUnavailable
    if error_cls is None:
        return LLMError(str(e), provider=provider, details=exc_name)
    if error_cls is LLMUnavailable:
        return LLMUnavailable(str(e), details=exc_name, provider=provider)
    return error_cls(details=exc_name, provider=provider)


def _request_to_kwargs(req: LLMRequest, model: str, timeout_s: float) -> dict[str, Any]:
    """Build LiteLLM completion kwargs from LLMRequest."""
    kwargs: dict[str, Any] = {
        "model": model,
        "messages": [m.model_dump() for m in req.messages],
        "timeout": timeout_s,
    }
    if req.temperature is not None:
        kwargs["temperature"] = req.temperature
    if req.max_output_tokens is not None:
        kwargs["max_tokens"] = req.max_output_tokens
    if req.response_format is not None:
        kwargs["response_format"] = req.response_format
    return kwargs


def _response_from_completion(raw: Any, provider: str, model: str, latency_ms: int) -> LLMResponse:
    """Build LLMResponse from a LiteLLM ModelResponse (or any OpenAI-shaped object)."""
    text = ""
    usage = None
    finish_reason = None
    choices = getattr(raw, "choices", None)
    if choices:
        c0 = choices[0]
        msg = getattr(c0, "message", None)
        if msg is not None:
            text = getattr(msg, "content", None) or ""
        else:
            text = getattr(c0, "text", None) or ""
        finish_reason = getattr(c0, "finish_reason", None)
    u = getattr(raw, "usage", None)
    if u:
        usage = LLMUsage(
            input_tokens=getattr(u, "prompt_tokens", 0) or 0,
            output_tokens=getattr(u, "completion_tokens", 0) or 0,
            total_tokens=getattr(u, "total_tokens", 0) or 0,
        )
    raw_dict: dict[str, Any] = {}
    if hasattr(raw, "model_dump"):
        raw_dict = raw.model_dump()
    return LLMResponse(
        text=text,
        raw=raw_dict,
        usage=usage,
        provider=provider,
        model=model,
        latency_ms=latency_ms,
        finish_reason=finish_reason,
    )


class LiteLLMClient:
    """Async LiteLLM wrapper: semaphore, timeout, retries, request/response normalization."""

    def __init__(
        self,
        *,
        concurrency_limit: int = 8,
        max_retries: int = 0,
        backoff_base_s: float = 0.5,
        backoff_max_s: float = 8.0,
        drop_params: bool = True,
    ) -> None:
        self._sem = asyncio.Semaphore(concurrency_limit)
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s
        self._backoff_max_s = backoff_max_s
        self._drop_params = drop_params

    async def acompletion(
        self,
        model: str,
        req: LLMRequest,
        *,
        timeout_s: float | None = None,
        api_base: str | None = None,
        api_key: str | None = None,
    ) -> LLMResponse:
        """Execute one completion. Applies semaphore, timeout, retries. Raises LLMError on failure."""
        provider = provider_from_model(model)
        timeout = timeout_s if timeout_s is not None else req.timeout_s or 30.0
        kwargs = _request_to_kwargs(req, model, timeout)
        if self._drop_params:
            kwargs["drop_params"] = True
        if api_base is not None:
            kwargs["api_base"] = api_base
        if api_key is not None:
            kwargs["api_key"] = api_key

        for attempt in range(self._max_retries + 1):
            async with self._sem:
                t0 = time.perf_counter()
                try:
                    raw = await acompletion(**kwargs)
                except Exception as e:  # noqa: BLE001
                    err = _map_exception(e, provider)
                    log_llm_call(
                        provider=provider,
                        model=model,
                        latency_ms=int((time.perf_counter() - t0) * 1000),
                        status="FAILED",
                        attempt=attempt + 1,
                        error_code=err.code,
                    )
                    if not err.retryable or attempt == self._max_retries:
                        raise err from e
                else:
                    latency_ms = int((time.perf_counter() - t0) * 1000)
                    resp = _response_from_completion(raw, provider, model, latency_ms)
                    log_llm_call(
                        provider=provider,
                        model=model,
                        latency_ms=latency_ms,
                        status="SUCCEEDED",
                        attempt=attempt + 1,
                        input_tokens=resp.usage.input_tokens if resp.usage else None,
                        output_tokens=resp.usage.output_tokens if resp.usage else None,
                    )
                    return resp
            delay = min(self._backoff_base_s * (2**attempt), self._backoff_max_s)
            await asyncio.sleep(delay)
        raise LLMUnavailable("Max retries exceeded", provider=provider)
