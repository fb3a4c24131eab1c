"""Completion failures. Each class pins a stable code and whether a retry can help."""
from __future__ import annotations


class LLMError(Exception):
    """
    Base completion failure. Subclasses set code, retryable and default_message as class
    attributes; any of them can be overridden per instance. details is a short diagnostic
    (usually the provider's exception name), never a prompt or a credential.
    """

    code = "UNKNOWN"
    retryable = False
    default_message = "Completion failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        retryable: bool | None = None,
        provider: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message or self.default_message)
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.provider = provider
        self.details = details or ""


class LLMTimeout(LLMError):
    code = "TIMEOUT"
    retryable = True
    default_message = "Completion timed out"


class LLMRateLimited(LLMError):
    """429 or exhausted quota."""

    code = "RATE_LIMITED"
    retryable = True
    default_message = "Provider is rate limiting requests"


class LLMBadRequest(LLMError):
    """The provider rejected the request itself; resending it unchanged fails the same way."""

    code = "BAD_REQUEST"
    default_message = "Provider rejected the request"


class LLMAuthError(LLMError):
    code = "AUTH_ERROR"
    default_message = "Provider refused the credentials"


class LLMUnavailable(LLMError):
    """5xx, dropped connection or an endpoint that is down."""

    code = "UNAVAILABLE"
    retryable = True
    default_message = "Provider is unavailable"


class LLMResponseInvalid(LLMError):
    """The call succeeded but carried no usable completion text."""

    code = "RESPONSE_INVALID"
    default_message = "Completion had no usable text"
