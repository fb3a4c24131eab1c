"""
Pooling and bounded refinement.
Initialize -> Act (refine_step) -> Evaluate -> Transition -> repeat or Finalize.
At most MAX_REFINEMENT_ITERATIONS + 1 passes run; the score threshold is a stop condition,
not a convergence guarantee.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from templex.extraction.config import ExtractionConfig
from templex.extraction.keywords import merge_keyword_lists
from templex.extraction.merger import StructureMerger, merge_element_lists
from templex.extraction.schema import (
    DocumentTemplate,
    FragmentAnalysis,
    NormalizedKeyword,
    RhetoricalTemplate,
)
from templex.extraction.validation import restrict_patterns

logger = logging.getLogger(__name__)

MAX_REFINEMENT_ITERATIONS = 3
KEYWORD_POOL_LIMIT = 50
DISPLAY_KEYWORD_LIMIT = 20

INITIAL_TITLE = "Extracted Template"
FALLBACK_TITLE = "Document Analysis"
# No model call backs these yet; every template gets the same descriptors
HEURISTIC_METADATA = {
    "genre": "article",
    "style": "informative",
    "purpose": "explain",
    "audience": "general",
    "tone": "neutral",
}

# evaluate_template weights
STRUCTURE_WEIGHT = 0.3
KEYWORDS_WEIGHT = 0.3
PATTERNS_WEIGHT = 0.2
METADATA_WEIGHT = 0.2
HEURISTIC_SHARE = 0.6
CONFIDENCE_SHARE = 0.4


@dataclass
class ExtractionState:
    """Mutable state owned by exactly one extract() call."""

    template: DocumentTemplate | None = None
    last_abstract_template: RhetoricalTemplate | None = None
    fragments_processed: int = 0
    fragments_estimated: int = 0
    errors: list[str] = field(default_factory=list)

    def observe(self, analysis: FragmentAnalysis) -> None:
        """Record one parsed fragment: last abstract template wins, warnings become errors."""
        self.fragments_processed += 1
        if analysis.abstract_template is not None:
            self.last_abstract_template = analysis.abstract_template
        self.errors.extend(analysis.warnings)


@dataclass
class RefinementOutcome:
    template: DocumentTemplate
    score: float
    passes: int
    feedback: list[str] = field(default_factory=list)


def initialize_template() -> DocumentTemplate:
    return DocumentTemplate(title=INITIAL_TITLE)


def mean_confidence(analyses: Sequence[FragmentAnalysis]) -> float:
    if not analyses:
        return 0.0
    return sum(a.confidence for a in analyses) / len(analyses)


def pool_keywords(analyses: Sequence[FragmentAnalysis]) -> list[NormalizedKeyword]:
    """Merged, weight-ranked keywords across analyses, capped at KEYWORD_POOL_LIMIT."""
    return merge_keyword_lists(*(a.keywords for a in analyses))[:KEYWORD_POOL_LIMIT]


def merge_patterns(analyses: Sequence[FragmentAnalysis]) -> dict[str, str]:
    """Later analyses overwrite earlier ones per key."""
    patterns: dict[str, str] = {}
    for a in analyses:
        patterns.update(restrict_patterns(a.patterns))
    return patterns


def pick_abstract_template(
    analyses: Sequence[FragmentAnalysis],
    state: ExtractionState | None = None,
) -> RhetoricalTemplate | None:
    """Most recently observed template; not merged."""
    if state is not None and state.last_abstract_template is not None:
        return state.last_abstract_template
    for a in reversed(analyses):
        if a.abstract_template is not None:
            return a.abstract_template
    return None


def pool_analyses(
    analyses: Sequence[FragmentAnalysis],
    merger: StructureMerger,
) -> list[FragmentAnalysis]:
    """Collapse several fragment analyses into one pooled analysis. 0 or 1 input is returned as is."""
    if len(analyses) <= 1:
        return list(analyses)
    pooled = FragmentAnalysis(
        elements=merger.merge([e for a in analyses for e in a.elements]),
        keywords=pool_keywords(analyses),
        patterns=merge_patterns(analyses),
        confidence=mean_confidence(analyses),
        abstract_template=pick_abstract_template(analyses),
        warnings=[w for a in analyses for w in a.warnings],
    )
    logger.debug(
        "analyses_pooled",
        extra={"analyses": len(analyses), "elements": len(pooled.elements)},
    )
    return [pooled]


def refine_step(
    template: DocumentTemplate,
    analyses: Sequence[FragmentAnalysis],
    state: ExtractionState,
    *,
    config: ExtractionConfig,
    merger: StructureMerger,
) -> DocumentTemplate:
    """One Act pass: fold pooled structure into the running template and rebuild the rest."""
    pooled = merger.merge([e for a in analyses for e in a.elements])
    structure = merge_element_lists(template.structure, pooled)
    return DocumentTemplate(
        title=template.title or FALLBACK_TITLE,
        structure=structure,
        abstract_template=pick_abstract_template(analyses, state),
        metadata=dict(HEURISTIC_METADATA) if config.extract_metadata else {},
        patterns=merge_patterns(analyses) if config.extract_patterns else {},
        keywords=pool_keywords(analyses)[:DISPLAY_KEYWORD_LIMIT] if config.extract_keywords else [],
    )


def completeness(template: DocumentTemplate) -> float:
    return (
        (STRUCTURE_WEIGHT if template.structure else 0.0)
        + (KEYWORDS_WEIGHT if template.keywords else 0.0)
        + (PATTERNS_WEIGHT if template.patterns else 0.0)
        + (METADATA_WEIGHT if template.metadata else 0.0)
    )


def evaluate_template(template: DocumentTemplate, analyses: Sequence[FragmentAnalysis]) -> float:
    """0.6 * heuristic completeness + 0.4 * mean fragment confidence (completeness alone without analyses)."""
    heuristic = completeness(template)
    if not analyses:
        return min(1.0, heuristic)
    return min(1.0, HEURISTIC_SHARE * heuristic + CONFIDENCE_SHARE * mean_confidence(analyses))


def describe_feedback(template: DocumentTemplate, score: float) -> str:
    missing = [
        name
        for name, present in (
            ("structure", template.structure),
            ("keywords", template.keywords),
            ("patterns", template.patterns),
            ("metadata", template.metadata),
        )
        if not present
    ]
    return f"Score: {score:.2f}. Missing: {', '.join(missing) or 'none'}"


def refine_template(
    analyses: Sequence[FragmentAnalysis],
    state: ExtractionState,
    *,
    config: ExtractionConfig,
    merger: StructureMerger | None = None,
) -> RefinementOutcome:
    """
    Single refine_step unless there is more than one analysis and either max_depth > 1 or
    use_iterative_refinement. The iterative path stops once the score reaches
    min_confidence or after MAX_REFINEMENT_ITERATIONS transitions, whichever comes first.
    """
    merger = merger or StructureMerger()
    if not analyses:
        template = initialize_template()
        state.template = template
        return RefinementOutcome(template=template, score=evaluate_template(template, analyses), passes=0)

    iterative = len(analyses) > 1 and (config.max_depth > 1 or config.use_iterative_refinement)
    template = initialize_template()
    feedback: list[str] = []
    iteration = 0
    passes = 0
    while True:
        candidate = refine_step(template, analyses, state, config=config, merger=merger)
        passes += 1
        score = evaluate_template(candidate, analyses)
        feedback.append(describe_feedback(candidate, score))
        should_continue = iterative and score < config.min_confidence and iteration < MAX_REFINEMENT_ITERATIONS
        # Transition: no rollback even if the score dropped
        template = candidate
        iteration += 1
        state.template = template
        logger.debug(
            "refinement_pass",
            extra={"pass": passes, "score": round(score, 4), "continue": should_continue},
        )
        if not should_continue:
            break
    return RefinementOutcome(template=template, score=score, passes=passes, feedback=feedback)
