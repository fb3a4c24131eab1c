"""Extraction-specific exceptions."""
from __future__ import annotations


class TemplateValidationError(ValueError):
    """An entity does not conform to the template schema (e.g. unknown element kind)."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ExtractionError(Exception):
    """One extraction call failed. The underlying error is chained as __cause__."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "EXTRACTION_FAILED",
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.errors = list(errors or [])
