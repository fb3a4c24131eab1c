"""
Completion text -> FragmentAnalysis. Total: malformed output degrades to partial or empty
data with warnings, never an exception.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from templex.extraction.errors import TemplateValidationError
from templex.extraction.json_repair import extract_structured, recover_partial_fields
from templex.extraction.schema import ELEMENT_KINDS, FragmentAnalysis
from templex.extraction.validation import (
    MAX_ELEMENT_DEPTH,
    validate_fragment_analysis,
    validate_rhetorical_template,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
PARTIAL_PARSE_CONFIDENCE = 0.3

# Kind names models emit when answering in Japanese
LOCALIZED_KINDS = {
    "見出し": "heading",
    "段落": "paragraph",
    "リスト": "list",
    "引用": "quote",
    "コード": "code",
    "セクション": "section",
}

_LEADING_TOKEN_RE = re.compile(r"^(\S+)")
_HEADING_MARK_RE = re.compile(r"(#+)\s")


def normalize_kind(value: Any) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    token = value.strip()
    return LOCALIZED_KINDS.get(token, token.lower())


def element_from_string(text: str) -> dict[str, Any]:
    """'heading ## Overview' -> {kind: heading, level: 2, content: Overview}."""
    stripped = text.strip()
    m = _LEADING_TOKEN_RE.match(stripped)
    token = m.group(1) if m else ""
    rest = stripped[len(token):]
    if token and set(token) == {"#"}:
        kind: str | None = "heading"
        rest = stripped
    else:
        kind = normalize_kind(token) or "paragraph"
    out: dict[str, Any] = {"kind": kind}
    mark = _HEADING_MARK_RE.search(stripped)
    if mark:
        out["level"] = len(mark.group(1))
    content = rest.lstrip().lstrip("#").strip()
    if content:
        out["content"] = content
    return out


def _normalize_element(item: Any, warnings: list[str], depth: int = 0) -> dict[str, Any] | None:
    """Coerce one raw element; None (with a warning) when it cannot become a known kind."""
    if isinstance(item, str):
        item = element_from_string(item)
    if not isinstance(item, Mapping):
        warnings.append(f"Dropped element of type {type(item).__name__}")
        return None
    kind = normalize_kind(item.get("kind", item.get("type")))
    if kind not in ELEMENT_KINDS:
        warnings.append(f"Dropped element with unknown kind {item.get('kind', item.get('type'))!r}")
        return None
    out = {k: v for k, v in item.items() if k not in ("type", "children")}
    out["kind"] = kind
    children = item.get("children")
    if isinstance(children, list) and depth < MAX_ELEMENT_DEPTH:
        out["children"] = [
            c for c in (_normalize_element(child, warnings, depth + 1) for child in children) if c is not None
        ]
    return out


def normalize_fragment_payload(data: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """
    Build a validator-safe dict from a parsed payload: alias fields, drop unusable elements,
    default confidence, keep the abstract template only when it is valid.
    """
    warnings: list[str] = []
    raw_elements = data.get("elements", data.get("structure"))
    elements: list[dict[str, Any]] = []
    if isinstance(raw_elements, list):
        for item in raw_elements:
            el = _normalize_element(item, warnings)
            if el is not None:
                elements.append(el)

    confidence = data.get("confidence")
    if partial:
        confidence = PARTIAL_PARSE_CONFIDENCE
    elif isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = DEFAULT_CONFIDENCE

    abstract = None
    raw_abstract = data.get("abstractTemplate", data.get("abstract_template"))
    if raw_abstract:
        try:
            abstract = validate_rhetorical_template(raw_abstract)
        except TemplateValidationError as e:
            warnings.append(f"Dropped abstract template: {e}")

    return {
        "elements": elements,
        "keywords": data.get("keywords"),
        "patterns": data.get("patterns"),
        "confidence": confidence,
        "abstract_template": abstract,
        "warnings": warnings,
    }


def parse_fragment_response(text: str) -> FragmentAnalysis:
    """Repair-extract the payload; fall back to per-field recovery at confidence 0.3."""
    data = extract_structured(text)
    partial = not isinstance(data, Mapping)
    if partial:
        logger.warning(
            "Fragment response is not a JSON object; recovering partial fields",
            extra={"response_len": len(text or "")},
        )
        data = recover_partial_fields(text)
    payload = normalize_fragment_payload(data, partial=partial)
    if partial:
        payload["warnings"].insert(0, "Partial parse: recovered keywords/elements/patterns individually")
    analysis = validate_fragment_analysis(payload)
    if analysis.warnings:
        logger.debug("fragment_parse_warnings", extra={"warnings": analysis.warnings})
    return analysis
