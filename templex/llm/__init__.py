"""
Completion layer: single typed async interface for all LLM calls.
Public API: LLMService, LLMSettings, LLMRequest, LLMResponse, CompletionProvider.
Other modules must not call LiteLLM directly.
"""
from templex.llm.errors import (
    LLMAuthError,
    LLMBadRequest,
    LLMError,
    LLMRateLimited,
    LLMResponseInvalid,
    LLMTimeout,
    LLMUnavailable,
)
from templex.llm.ports import CompletionProvider, LLMClientPort
from templex.llm.service import LLMService
from templex.llm.settings import LLMSettings
from templex.llm.types import LLMMessage, LLMRequest, LLMResponse, LLMUsage

__all__ = [
    "LLMService",
    "LLMSettings",
    "CompletionProvider",
    "LLMClientPort",
    "LLMRequest",
    "LLMResponse",
    "LLMMessage",
    "LLMUsage",
    "LLMError",
    "LLMTimeout",
    "LLMRateLimited",
    "LLMBadRequest",
    "LLMAuthError",
    "LLMUnavailable",
    "LLMResponseInvalid",
]
