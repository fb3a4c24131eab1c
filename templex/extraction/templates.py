"""Whole-template utilities: merge several templates, simplify one, score two against each other."""
from __future__ import annotations

from collections.abc import Mapping, Sequence

from templex.extraction.keywords import keyword_list_similarity
from templex.extraction.merger import merge_element_lists
from templex.extraction.schema import DocumentTemplate, NormalizedKeyword, StructuralElement

SIMPLIFIED_KEYWORD_LIMIT = 10

# compare_templates weights
STRUCTURE_WEIGHT = 0.4
KEYWORDS_WEIGHT = 0.3
METADATA_WEIGHT = 0.15
PATTERNS_WEIGHT = 0.15


def merge_templates(templates: Sequence[DocumentTemplate]) -> DocumentTemplate:
    """
    Fold templates left to right: structure via the element fold, metadata/patterns
    later-wins, keywords keep the highest weight per (term, context). Title from the first.
    """
    if not templates:
        raise ValueError("No templates to merge")
    if len(templates) == 1:
        return templates[0].model_copy(deep=True)

    structure: list[StructuralElement] = []
    metadata: dict[str, str] = {}
    patterns: dict[str, str] = {}
    best: dict[tuple[str, str], NormalizedKeyword] = {}
    abstract = None
    for t in templates:
        structure = merge_element_lists(structure, t.structure)
        metadata.update(t.metadata)
        patterns.update(t.patterns)
        if t.abstract_template is not None:
            abstract = t.abstract_template
        for kw in t.keywords:
            key = (kw.term.lower(), kw.context)
            if key not in best or best[key].weight < kw.weight:
                best[key] = kw
    return DocumentTemplate(
        title=templates[0].title,
        structure=structure,
        abstract_template=abstract,
        metadata=metadata,
        patterns=patterns,
        keywords=sorted(best.values(), key=lambda k: k.weight, reverse=True),
    )


def _simplify_structure(elements: Sequence[StructuralElement]) -> list[StructuralElement]:
    return [
        StructuralElement(
            kind=e.kind,
            level=e.level,
            intent=e.intent,
            children=_simplify_structure(e.children),
        )
        for e in elements
    ]


def simplify_template(template: DocumentTemplate) -> DocumentTemplate:
    """Structure reduced to kind/level/intent/children; top keywords only."""
    return template.model_copy(
        update={
            "structure": _simplify_structure(template.structure),
            "keywords": list(template.keywords[:SIMPLIFIED_KEYWORD_LIMIT]),
        }
    )


def _jaccard_or_zero(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def _metadata_similarity(a: Mapping[str, str], b: Mapping[str, str]) -> float:
    if not a or not b:
        return 0.0
    matches = sum(1 for k, v in a.items() if b.get(k) == v)
    return matches / max(len(a), len(b))


def compare_templates(a: DocumentTemplate, b: DocumentTemplate) -> float:
    """Similarity in [0, 1]: element kinds 0.4, keywords 0.3, metadata 0.15, pattern keys 0.15."""
    structure = _jaccard_or_zero({e.kind for e in a.structure}, {e.kind for e in b.structure})
    keywords = keyword_list_similarity(a.keywords, b.keywords)
    metadata = _metadata_similarity(a.metadata, b.metadata)
    patterns = _jaccard_or_zero(set(a.patterns), set(b.patterns))
    return (
        structure * STRUCTURE_WEIGHT
        + keywords * KEYWORDS_WEIGHT
        + metadata * METADATA_WEIGHT
        + patterns * PATTERNS_WEIGHT
    )
