"""
Schema validator / sanitizer. Gates every entity leaving the system.
Clamps and coerces everything it can; raises TemplateValidationError only for an
out-of-enum element kind or a rhetorical template without name/formula.
"""
from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from templex.extraction.errors import TemplateValidationError
from templex.extraction.keywords import normalize_keywords
from templex.extraction.schema import (
    ELEMENT_KINDS,
    FLOWS,
    METADATA_KEYS,
    PATTERN_KEYS,
    UNTITLED_TEMPLATE,
    DocumentTemplate,
    FragmentAnalysis,
    RhetoricalTemplate,
    StructuralElement,
    TemplateComponent,
)

logger = logging.getLogger(__name__)

MAX_ELEMENT_DEPTH = 32
_TEXT_FIELDS = ("content", "intent", "persuasion", "technique", "transition")


def clamp_weight(value: Any, default: float = 0.0) -> float:
    """Clamp a weight/confidence into [0, 1]. Non-numeric (incl. bool, NaN) -> default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return default
    return min(1.0, max(0.0, float(value)))


def _as_mapping(raw: Any, what: str) -> Mapping[str, Any]:
    if isinstance(raw, BaseModel):
        return raw.model_dump()
    if isinstance(raw, Mapping):
        return raw
    raise TemplateValidationError(f"{what} must be an object, got {type(raw).__name__}")


def _text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [s.strip() for s in value if isinstance(s, str) and s.strip()]


def _level(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and 1 <= value <= 6:
        return value
    return None


def validate_element(raw: Any, *, _depth: int = 0) -> StructuralElement:
    """
    Validate one element tree. Raises TemplateValidationError iff a kind (here or in a
    descendant) is outside the six known kinds. Heading level missing/out of range -> 1;
    other kinds drop an invalid level. Non-list keywords/children -> [].
    """
    data = _as_mapping(raw, "Element")
    kind = data.get("kind", data.get("type"))
    if kind not in ELEMENT_KINDS:
        raise TemplateValidationError(f"Invalid element kind: {kind!r}", field="kind")

    level = _level(data.get("level"))
    if kind == "heading" and level is None:
        level = 1

    raw_children = data.get("children")
    children: list[StructuralElement] = []
    if isinstance(raw_children, (list, tuple)) and raw_children:
        if _depth >= MAX_ELEMENT_DEPTH:
            logger.warning("Element tree deeper than %s; children dropped", MAX_ELEMENT_DEPTH)
        else:
            children = [validate_element(c, _depth=_depth + 1) for c in raw_children]

    return StructuralElement(
        kind=kind,
        level=level,
        keywords=list(dict.fromkeys(kw.term for kw in normalize_keywords(data.get("keywords")))),
        children=children,
        **{f: _text(data.get(f)) for f in _TEXT_FIELDS},
    )


def _validate_component(raw: Any, index: int) -> TemplateComponent:
    data = raw if isinstance(raw, Mapping) else {}
    position = data.get("position")
    if isinstance(position, bool) or not isinstance(position, (int, float)) or (
        isinstance(position, float) and not position.is_integer()
    ):
        position = 0
    return TemplateComponent(
        name=_text(data.get("name")) or f"Component {index + 1}",
        purpose=_text(data.get("purpose")) or "",
        examples=_string_list(data.get("examples")),
        patterns=_string_list(data.get("patterns")),
        position=int(position),
        weight=clamp_weight(data.get("weight")),
    )


def validate_rhetorical_template(raw: Any) -> RhetoricalTemplate:
    """Requires non-empty name and formula. Weights clamped; unknown flow -> Linear."""
    data = _as_mapping(raw, "Rhetorical template")
    name = data.get("name")
    formula = data.get("formula")
    if not isinstance(name, str) or not name.strip():
        raise TemplateValidationError("Rhetorical template must have a valid name", field="name")
    if not isinstance(formula, str) or not formula.strip():
        raise TemplateValidationError("Rhetorical template must have a valid formula", field="formula")
    raw_components = data.get("components")
    components = (
        [_validate_component(c, i) for i, c in enumerate(raw_components)]
        if isinstance(raw_components, (list, tuple))
        else []
    )
    flow = data.get("flow")
    techniques = data.get("persuasion_techniques", data.get("persuasionTechniques"))
    return RhetoricalTemplate(
        name=name.strip(),
        formula=formula.strip(),
        components=components,
        flow=flow if flow in FLOWS else "Linear",
        persuasion_techniques=_string_list(techniques),
    )


def restrict_patterns(raw: Any) -> dict[str, str]:
    """Keep only introduction/body/conclusion; non-string values are JSON-encoded."""
    if not isinstance(raw, Mapping):
        return {}
    out: dict[str, str] = {}
    for key in PATTERN_KEYS:
        value = raw.get(key)
        if value is None:
            continue
        text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        if text.strip():
            out[key] = text
    return out


def restrict_metadata(raw: Any) -> dict[str, str]:
    if not isinstance(raw, Mapping):
        return {}
    return {k: raw[k] for k in METADATA_KEYS if isinstance(raw.get(k), str) and raw[k].strip()}


def _optional_template(data: Mapping[str, Any]) -> RhetoricalTemplate | None:
    raw = data.get("abstract_template", data.get("abstractTemplate"))
    return validate_rhetorical_template(raw) if raw else None


def validate_fragment_analysis(raw: Any) -> FragmentAnalysis:
    """Strict: element kinds and the abstract template must be valid. Missing confidence -> 0."""
    data = _as_mapping(raw, "Fragment analysis")
    elements = data.get("elements")
    warnings = data.get("warnings")
    return FragmentAnalysis(
        elements=[validate_element(e) for e in elements] if isinstance(elements, (list, tuple)) else [],
        keywords=normalize_keywords(data.get("keywords")),
        patterns=restrict_patterns(data.get("patterns")),
        confidence=clamp_weight(data.get("confidence"), default=0.0),
        abstract_template=_optional_template(data),
        warnings=[w for w in warnings if isinstance(w, str)] if isinstance(warnings, list) else [],
    )


def validate_document_template(raw: Any) -> DocumentTemplate:
    """Final gate before a template reaches the caller."""
    data = _as_mapping(raw, "Document template")
    title = data.get("title")
    structure = data.get("structure")
    keywords = normalize_keywords(data.get("keywords"))
    return DocumentTemplate(
        title=title.strip() if isinstance(title, str) and title.strip() else UNTITLED_TEMPLATE,
        structure=[validate_element(e) for e in structure] if isinstance(structure, (list, tuple)) else [],
        abstract_template=_optional_template(data),
        metadata=restrict_metadata(data.get("metadata")),
        patterns=restrict_patterns(data.get("patterns")),
        keywords=keywords,
    )
