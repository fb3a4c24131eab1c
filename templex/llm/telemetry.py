"""Observability: redaction and structured call logging. No ad hoc logs in service/client."""
from __future__ import annotations

import hashlib
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Redaction: patterns to mask (never log raw)
_SECRET_PATTERNS = [
    re.compile(r"\b(?:sk-[a-zA-Z0-9]{20,})\b", re.IGNORECASE),  # OpenAI-style
    re.compile(r"\b(?:AIza[a-zA-Z0-9_-]{35})\b"),  # Google API key style
    re.compile(r"\bBearer\s+[a-zA-Z0-9_.-]+\b", re.IGNORECASE),
]
_PII_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")  # email
_PREVIEW_MAX_CHARS = 200


def redact_preview(text: str, *, max_chars: int = _PREVIEW_MAX_CHARS) -> str:
    """Redact secrets and PII, then truncate. Use for any logged response preview."""
    if not text:
        return ""
    out = text
    for pat in _SECRET_PATTERNS:
        out = pat.sub("[REDACTED]", out)
    out = _PII_PATTERN.sub("[EMAIL]", out)
    if len(out) > max_chars:
        out = out[:max_chars] + "..."
    return out


def log_llm_call(
    *,
    provider: str,
    model: str,
    latency_ms: int,
    status: str,
    attempt: int = 1,
    input_tokens: int | None = None,
    output_tokens: int | None = None,
    error_code: str | None = None,
) -> None:
    """Emit structured log for one completion call. Never log prompt text or API keys."""
    extra: dict[str, Any] = {
        "provider": provider,
        "model": model,
        "latency_ms": latency_ms,
        "status": status,
        "attempt": attempt,
    }
    if input_tokens is not None:
        extra["input_tokens"] = input_tokens
    if output_tokens is not None:
        extra["output_tokens"] = output_tokens
    if error_code is not None:
        extra["error_code"] = error_code
    level = logging.INFO if status == "SUCCEEDED" else logging.WARNING
    logger.log(level, "llm_call", extra=extra)


def stable_hash(content: str) -> str:
    """SHA256 hex digest used to correlate responses in logs without storing them."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
