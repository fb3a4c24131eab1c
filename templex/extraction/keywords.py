"""
Keyword aggregation: one internal shape for the strings / {term, weight} objects models emit.
Repeats accumulate with diminishing returns so weights saturate at 1.0.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from templex.extraction.schema import DEFAULT_KEYWORD_CONTEXT, NormalizedKeyword

TERM_FIELDS = ("term", "keyword", "text")
WEIGHT_FIELDS = ("weight", "score")
REPEAT_FACTOR = 0.5


def _coerce_weight(value: Any) -> float:
    """Clamp into [0, 1]; missing or non-numeric (incl. bool, NaN) -> 1.0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return 1.0
    return min(1.0, max(0.0, float(value)))


def normalize_keyword(raw: Any) -> NormalizedKeyword | None:
    """Normalize a string or mapping keyword. None when no non-empty term is present."""
    if isinstance(raw, NormalizedKeyword):
        term = raw.term.strip()
        return raw.model_copy(update={"term": term}) if term else None
    if isinstance(raw, str):
        term = raw.strip()
        return NormalizedKeyword(term=term) if term else None
    if isinstance(raw, Mapping):
        term = next((raw[f] for f in TERM_FIELDS if isinstance(raw.get(f), str) and raw[f].strip()), None)
        if term is None:
            return None
        weight_raw = next((raw[f] for f in WEIGHT_FIELDS if raw.get(f) is not None), None)
        context = raw.get("context")
        return NormalizedKeyword(
            term=term.strip(),
            weight=_coerce_weight(weight_raw),
            context=context.strip() if isinstance(context, str) and context.strip() else DEFAULT_KEYWORD_CONTEXT,
        )
    return None


def normalize_keywords(raw: Any) -> list[NormalizedKeyword]:
    """Normalize a list; non-list input -> []. Entries without a term are dropped."""
    if not isinstance(raw, (list, tuple)):
        return []
    out: list[NormalizedKeyword] = []
    for item in raw:
        kw = normalize_keyword(item)
        if kw is not None:
            out.append(kw)
    return out


def merge_keyword_lists(*lists: Any) -> list[NormalizedKeyword]:
    """
    Merge keyword lists keyed on (lower term, context). A repeat adds half its weight,
    capped at 1.0. First spelling of a term wins. Sorted by weight descending (stable).
    """
    merged: dict[tuple[str, str], NormalizedKeyword] = {}
    for raw_list in lists:
        for kw in normalize_keywords(raw_list):
            key = (kw.term.lower(), kw.context)
            existing = merged.get(key)
            if existing is None:
                merged[key] = kw
            else:
                existing.weight = min(1.0, existing.weight + kw.weight * REPEAT_FACTOR)
    return sorted(merged.values(), key=lambda k: k.weight, reverse=True)


def keyword_terms(raw: Any) -> set[str]:
    return {kw.term.lower() for kw in normalize_keywords(raw)}


def keyword_list_similarity(l1: Any, l2: Any) -> float:
    """Jaccard over lower-cased terms; 0 when either side normalizes to nothing."""
    s1 = keyword_terms(l1)
    s2 = keyword_terms(l2)
    if not s1 or not s2:
        return 0.0
    return len(s1 & s2) / len(s1 | s2)


def filter_by_weight(keywords: Iterable[NormalizedKeyword], min_weight: float = 0.5) -> list[NormalizedKeyword]:
    return [kw for kw in keywords if kw.weight >= min_weight]


def group_by_context(keywords: Iterable[NormalizedKeyword]) -> dict[str, list[NormalizedKeyword]]:
    groups: dict[str, list[NormalizedKeyword]] = {}
    for kw in keywords:
        groups.setdefault(kw.context, []).append(kw)
    return groups
