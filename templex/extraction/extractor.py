"""
TemplateExtractor: text -> ExtractionResult.
Fragments go through the chunk processor; each fragment is one completion call plus repair.
All per-call state lives in ExtractionState, so one extractor can serve concurrent calls.
"""
from __future__ import annotations

import json
import logging
import math
import time

from templex.extraction.chunking import FragmentProcessor
from templex.extraction.config import ChunkingSettings, ExtractionConfig, ExtractionOptions
from templex.extraction.errors import ExtractionError, TemplateValidationError
from templex.extraction.merger import StructureMerger
from templex.extraction.parsing import parse_fragment_response
from templex.extraction.ports import ChunkCallbacks, ChunkProcessor
from templex.extraction.prompt import PromptBuilder
from templex.extraction.refinement import (
    ExtractionState,
    evaluate_template,
    pool_analyses,
    refine_template,
)
from templex.extraction.schema import ExtractionResult, FragmentAnalysis, ProgressInfo
from templex.extraction.validation import validate_document_template
from templex.llm.errors import LLMError
from templex.llm.ports import CompletionProvider

logger = logging.getLogger(__name__)


def fragment_key(analysis: FragmentAnalysis) -> str:
    """Content identity of an analysis; equal payloads from overlapping fragments collapse."""
    return json.dumps(analysis.model_dump(mode="json"), sort_keys=True, ensure_ascii=False)


def _error_code(exc: Exception) -> str:
    if isinstance(exc, LLMError):
        return "PROVIDER_FAILED"
    if isinstance(exc, TemplateValidationError):
        return "VALIDATION_FAILED"
    return "EXTRACTION_FAILED"


class TemplateExtractor:
    """Extracts a DocumentTemplate from text using an injected completion provider."""

    def __init__(
        self,
        provider: CompletionProvider,
        config: ExtractionConfig | None = None,
        *,
        processor: ChunkProcessor | None = None,
        chunking: ChunkingSettings | None = None,
        merger: StructureMerger | None = None,
        custom_prompts: dict[str, str] | None = None,
    ) -> None:
        self._provider = provider
        self._config = config or ExtractionConfig()
        self._processor = processor
        self._chunking = chunking or ChunkingSettings()
        self._merger = merger or StructureMerger()
        self._prompts = PromptBuilder(self._config.language, custom_prompts)

    @property
    def config(self) -> ExtractionConfig:
        return self._config

    def _notify(self, options: ExtractionOptions, phase: str, current: int, total: int, message: str) -> None:
        """Fire-and-forget progress. A failing callback is logged and ignored."""
        if options.verbose:
            logger.info(message, extra={"phase": phase, "current": current, "total": total})
        if options.on_progress is None:
            return
        try:
            options.on_progress(ProgressInfo(phase=phase, current=current, total=total, message=message))
        except Exception:
            logger.exception("Progress callback failed", extra={"phase": phase})

    async def _analyze(
        self,
        text: str,
        options: ExtractionOptions,
        state: ExtractionState,
    ) -> list[FragmentAnalysis]:
        settings = options.resolve(self._chunking)
        processor = self._processor or FragmentProcessor(settings)
        state.fragments_estimated = max(1, math.ceil(len(text or "") / settings.chunk_size))
        system_prompt = self._prompts.analysis_prompt()

        async def process_chunk(fragment: str) -> FragmentAnalysis:
            self._notify(
                options,
                "analyzing",
                state.fragments_processed,
                state.fragments_estimated,
                f"Analyzing chunk {state.fragments_processed + 1} of {state.fragments_estimated}",
            )
            response = await self._provider.complete(system_prompt, fragment)
            analysis = parse_fragment_response(response)
            state.observe(analysis)
            return analysis

        callbacks = ChunkCallbacks(
            process_chunk=process_chunk,
            merge_results=lambda results: pool_analyses(results, self._merger),
            key_of=fragment_key,
        )
        analyses = await processor.process(text or "", callbacks)
        self._notify(
            options,
            "analyzing",
            state.fragments_processed,
            state.fragments_processed,
            "Analysis complete",
        )
        return analyses

    async def extract(self, text: str, options: ExtractionOptions | None = None) -> ExtractionResult:
        """
        Returns a schema-valid result (non-fatal recovery notes in errors) or raises one
        ExtractionError with the provider/validation failure chained as __cause__.
        """
        options = options or ExtractionOptions()
        state = ExtractionState()
        t0 = time.perf_counter()
        try:
            self._notify(options, "chunking", 0, 1, "Preparing text chunks for analysis")
            analyses = await self._analyze(text, options, state)

            self._notify(options, "refining", 0, 1, "Refining template structure")
            outcome = refine_template(analyses, state, config=self._config, merger=self._merger)

            self._notify(options, "finalizing", 0, 1, "Finalizing extraction results")
            template = validate_document_template(outcome.template)
            confidence = evaluate_template(template, analyses)
            self._notify(options, "finalizing", 1, 1, "Extraction complete")
        except Exception as e:
            state.errors.append(str(e))
            logger.warning(
                "extraction_failed",
                extra={"error_code": _error_code(e), "fragments": state.fragments_processed},
            )
            raise ExtractionError(
                f"Template extraction failed: {e}",
                code=_error_code(e),
                errors=state.errors,
            ) from e

        processing_time_ms = int((time.perf_counter() - t0) * 1000)
        logger.info(
            "extraction_complete",
            extra={
                "chunks": state.fragments_processed,
                "confidence": round(confidence, 4),
                "passes": outcome.passes,
                "processing_time_ms": processing_time_ms,
            },
        )
        return ExtractionResult(
            template=template,
            confidence=confidence,
            processing_time_ms=processing_time_ms,
            chunks=state.fragments_processed,
            errors=list(state.errors) or None,
        )
