"""
templex: extract reusable document templates from text with an LLM.
Public API: TemplateExtractor, ExtractionConfig, ExtractionOptions, LLMService, LLMSettings.
"""
from templex.extraction import (
    DocumentTemplate,
    ExtractionConfig,
    ExtractionError,
    ExtractionOptions,
    ExtractionResult,
    ProgressInfo,
    TemplateExtractor,
    TemplateValidationError,
    compare_templates,
    merge_templates,
    simplify_template,
)
from templex.llm import CompletionProvider, LLMError, LLMService, LLMSettings

__version__ = "0.1.0"

__all__ = [
    "TemplateExtractor",
    "ExtractionConfig",
    "ExtractionOptions",
    "ExtractionResult",
    "ExtractionError",
    "TemplateValidationError",
    "DocumentTemplate",
    "ProgressInfo",
    "merge_templates",
    "simplify_template",
    "compare_templates",
    "CompletionProvider",
    "LLMService",
    "LLMSettings",
    "LLMError",
]
