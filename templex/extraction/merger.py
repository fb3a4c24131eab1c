"""
Structure merger: segment the pooled element sequence at semantic boundaries, then fold
segments left to right, deduplicating by element similarity.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from templex.extraction.keywords import keyword_list_similarity
from templex.extraction.schema import CONTENT_KINDS, StructuralElement
from templex.extraction.similarity import element_similarity

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.7
# Trees come from an untrusted generator; below this depth children are concatenated, not merged
MAX_MERGE_DEPTH = 32
INTENT_SEPARATOR = " / "


def _first_non_empty(a: str | None, b: str | None) -> str | None:
    return a or b or None


def _merge_intent(a: str | None, b: str | None) -> str | None:
    """Join as "A / B"; parts already present are not repeated, so re-folding is a no-op."""
    if not a or not b:
        return a or b or None
    parts = a.split(INTENT_SEPARATOR)
    for part in b.split(INTENT_SEPARATOR):
        if part not in parts:
            parts.append(part)
    return INTENT_SEPARATOR.join(parts)


def merge_elements(e1: StructuralElement, e2: StructuralElement, *, _depth: int = 0) -> StructuralElement:
    """Combine two matching elements. e1 wins ties; children are merged with the same fold."""
    c1 = e1.content or ""
    c2 = e2.content or ""
    content = (c1 if len(c1) >= len(c2) else c2) or None
    keywords = list(dict.fromkeys([*e1.keywords, *e2.keywords]))
    if _depth < MAX_MERGE_DEPTH:
        children = merge_element_lists(e1.children, e2.children, _depth=_depth + 1)
    else:
        children = [*e1.children, *e2.children]
    return StructuralElement(
        kind=e1.kind,
        level=e1.level if e1.level is not None else e2.level,
        content=content,
        intent=_merge_intent(e1.intent, e2.intent),
        persuasion=_first_non_empty(e1.persuasion, e2.persuasion),
        technique=_first_non_empty(e1.technique, e2.technique),
        transition=_first_non_empty(e1.transition, e2.transition),
        keywords=keywords,
        children=children,
    )


def best_match(candidates: Sequence[StructuralElement], element: StructuralElement) -> int | None:
    """Index of the most similar candidate strictly above the threshold; first maximum wins."""
    best_index: int | None = None
    best_score = SIMILARITY_THRESHOLD
    for i, candidate in enumerate(candidates):
        score = element_similarity(candidate, element)
        if score > best_score:
            best_index = i
            best_score = score
    return best_index


def merge_element_lists(
    list1: Sequence[StructuralElement],
    list2: Sequence[StructuralElement],
    *,
    _depth: int = 0,
) -> list[StructuralElement]:
    """
    Fold list2 into list1. Each list2 element merges into its best match in the running
    result (kept at that slot) or is appended. list1 order is preserved.
    """
    result = list(list1)
    for element in list2:
        idx = best_match(result, element)
        if idx is None:
            result.append(element)
        else:
            result[idx] = merge_elements(result[idx], element, _depth=_depth)
    return result


@runtime_checkable
class MergeStrategy(Protocol):
    def merge(self, elements: Sequence[StructuralElement]) -> list[StructuralElement]:
        ...


class SemanticMergeStrategy:
    """Heuristic segmentation (headings, sections, kind transitions, size, keyword shift) + fold."""

    def __init__(
        self,
        *,
        min_segment_size: int = 3,
        max_segment_size: int = 20,
        keyword_similarity_threshold: float = 0.3,
        heading_transition_size: int = 5,
    ) -> None:
        self.min_segment_size = min_segment_size
        self.max_segment_size = max_segment_size
        self.keyword_similarity_threshold = keyword_similarity_threshold
        self.heading_transition_size = heading_transition_size

    def is_boundary(
        self,
        element: StructuralElement,
        previous: StructuralElement | None,
        segment: Sequence[StructuralElement],
    ) -> bool:
        """True when a new segment should start before element."""
        size = len(segment)
        if element.kind == "heading" and element.level is not None and element.level <= 2:
            if size >= self.min_segment_size:
                return True
        if element.kind == "section":
            return True
        if previous is not None and previous.kind != element.kind:
            if (
                previous.kind in CONTENT_KINDS
                and element.kind == "heading"
                and size > self.heading_transition_size
            ):
                return True
            if previous.kind == "code" or element.kind == "code":
                return True
        if size >= self.max_segment_size:
            return True
        if previous is not None and previous.keywords and element.keywords and size > 2:
            if keyword_list_similarity(previous.keywords, element.keywords) < self.keyword_similarity_threshold:
                return True
        return False

    def detect_segments(self, elements: Sequence[StructuralElement]) -> list[list[StructuralElement]]:
        segments: list[list[StructuralElement]] = []
        current: list[StructuralElement] = []
        previous: StructuralElement | None = None
        for element in elements:
            if current and self.is_boundary(element, previous, current):
                segments.append(current)
                current = []
            current.append(element)
            previous = element
        if current:
            segments.append(current)
        return segments

    def merge(self, elements: Sequence[StructuralElement]) -> list[StructuralElement]:
        segments = self.detect_segments(elements)
        if not segments:
            return []
        logger.debug(
            "merge_segments",
            extra={"elements": len(elements), "segments": len(segments)},
        )
        result = segments[0]
        for segment in segments[1:]:
            result = merge_element_lists(result, segment)
        return result


def create_merge_strategy(kind: str = "semantic", **options: object) -> MergeStrategy:
    """Factory for merge strategies. Only "semantic" exists."""
    if kind != "semantic":
        raise ValueError(f"Unknown merge strategy: {kind!r}")
    return SemanticMergeStrategy(**options)  # type: ignore[arg-type]


class StructureMerger:
    """Delegates to a pluggable MergeStrategy (semantic by default)."""

    def __init__(self, strategy: MergeStrategy | None = None) -> None:
        self._strategy = strategy or SemanticMergeStrategy()

    @property
    def strategy(self) -> MergeStrategy:
        return self._strategy

    def set_strategy(self, strategy: MergeStrategy) -> None:
        self._strategy = strategy

    def merge(self, elements: Sequence[StructuralElement]) -> list[StructuralElement]:
        return self._strategy.merge(elements)
