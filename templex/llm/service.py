"""
LLMService: single public entrypoint for completions.
Other modules import only LLMService (and types). The extractor sees it through CompletionProvider.
"""
from __future__ import annotations

import logging

from templex.llm.client_litellm import LiteLLMClient
from templex.llm.errors import LLMResponseInvalid
from templex.llm.ports import LLMClientPort
from templex.llm.settings import LLMSettings
from templex.llm.telemetry import redact_preview, stable_hash
from templex.llm.types import LLMMessage, LLMRequest, LLMResponse, provider_from_model

logger = logging.getLogger(__name__)


class LLMService:
    """Binds settings to a client. Implements CompletionProvider via complete()."""

    def __init__(
        self,
        settings: LLMSettings | None = None,
        *,
        client: LLMClientPort | None = None,
    ) -> None:
        self._settings = settings or LLMSettings()
        self._client = client or LiteLLMClient(
            concurrency_limit=self._settings.concurrency_limit,
            max_retries=self._settings.max_retries,
            backoff_base_s=self._settings.retry_backoff_base_s,
            backoff_max_s=self._settings.retry_backoff_max_s,
            drop_params=self._settings.drop_unsupported_params,
        )

    @property
    def settings(self) -> LLMSettings:
        return self._settings

    async def chat(self, req: LLMRequest) -> LLMResponse:
        """
        Execute one chat completion against the configured model.
        Raises LLMResponseInvalid when the provider answers with no text.
        """
        model = self._settings.model
        timeout_s = req.timeout_s or self._settings.default_timeout_s
        resp = await self._client.acompletion(
            model,
            req,
            timeout_s=timeout_s,
            api_base=self._settings.api_base,
            api_key=self._settings.api_key,
        )
        if not (resp.text or "").strip():
            raise LLMResponseInvalid(
                "Empty completion text",
                provider=provider_from_model(model),
                details=resp.finish_reason or "",
            )
        logger.debug(
            "llm_response",
            extra={
                "model": resp.model,
                "response_sha256": stable_hash(resp.text),
                "response_preview": redact_preview(resp.text),
            },
        )
        return resp

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """System + user prompt in, raw completion text out."""
        req = LLMRequest(
            messages=[
                LLMMessage(role="system", content=system_prompt),
                LLMMessage(role="user", content=user_prompt),
            ],
            temperature=self._settings.temperature if temperature is None else temperature,
            max_output_tokens=self._settings.max_output_tokens if max_tokens is None else max_tokens,
            response_format={"type": "json_object"} if self._settings.json_mode else None,
        )
        resp = await self.chat(req)
        return resp.text
