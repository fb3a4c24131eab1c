"""
Best-effort JSON recovery from completion text. Never raises.
Cascade (first success wins):
  1. direct json.loads
  2. fenced block (``` or ~~~, optional json tag)
  3. balanced-bracket scan from the first { or [
  4. textual repair (comments, trailing commas, bare keys, BOM/zero-width, whitespace), then 1 and 3 again
recover_partial_fields() is the last resort when all four fail.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"(```|~~~)[ \t]*(?:json)?[ \t]*\r?\n?([\s\S]*?)\r?\n?\1", re.IGNORECASE)
# (?<!:) keeps "http://..." inside string values intact
_LINE_COMMENT_RE = re.compile(r"(?<!:)//.*$", re.MULTILINE)
_BLOCK_COMMENT_RE = re.compile(r"/\*[\s\S]*?\*/")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_BOM_RE = re.compile("^\ufeff")
_ZERO_WIDTH_RE = re.compile("[\u200b\u200c\u200d\u2060\ufeff]")
_WHITESPACE_RE = re.compile(r"\s+")
_STRING_RE = re.compile(r'"(?:\\.|[^"\\])*"')

_PAIRS = {"{": "}", "[": "]"}

# JSON errors surface as ValueError (JSONDecodeError); pathological nesting as RecursionError
_PARSE_ERRORS = (ValueError, RecursionError)


def _loads(text: str, *, strict: bool = True) -> tuple[bool, Any]:
    """Returns (ok, value). strict=False tolerates raw control characters inside strings."""
    try:
        return True, json.loads(text, strict=strict)
    except _PARSE_ERRORS:
        return False, None


def fenced_block(text: str) -> str | None:
    """Body of the first fenced code block, or None."""
    m = _FENCE_RE.search(text)
    return m.group(2) if m else None


def balanced_slice(text: str, start: int | None = None) -> str | None:
    """
    Substring from the first { or [ (at or after start) to its matching closer.
    Only the opening bracket's own type is counted; quoted strings and backslash escapes are skipped.
    Returns None when no opener exists or it is never closed.
    """
    if start is None:
        candidates = [i for i in (text.find("{"), text.find("[")) if i != -1]
        if not candidates:
            return None
        start = min(candidates)
    if start >= len(text) or text[start] not in _PAIRS:
        return None
    opener = text[start]
    closer = _PAIRS[opener]
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _sub_outside_strings(pattern: re.Pattern[str], repl: str, text: str) -> str:
    """pattern.sub applied only between double-quoted literals; string contents are left alone."""
    parts = []
    pos = 0
    for m in _STRING_RE.finditer(text):
        parts.append(pattern.sub(repl, text[pos:m.start()]))
        parts.append(m.group(0))
        pos = m.end()
    parts.append(pattern.sub(repl, text[pos:]))
    return "".join(parts)


def clean_json_text(text: str) -> str:
    """Textual repair pass. Order matters: comments go before whitespace is collapsed."""
    out = _LINE_COMMENT_RE.sub("", text)
    out = _BLOCK_COMMENT_RE.sub("", out)
    out = _sub_outside_strings(_TRAILING_COMMA_RE, r"\1", out)
    out = _sub_outside_strings(_BARE_KEY_RE, r'\1"\2":', out)
    out = _BOM_RE.sub("", out)
    out = _ZERO_WIDTH_RE.sub("", out)
    out = _WHITESPACE_RE.sub(" ", out)
    return out.strip()


def extract_structured(text: Any) -> Any | None:
    """Recover a JSON value from arbitrary text. Returns None when nothing parses; never raises."""
    if not isinstance(text, str) or not text.strip():
        return None

    ok, value = _loads(text)
    if ok:
        return value

    block = fenced_block(text)
    if block is not None:
        ok, value = _loads(block)
        if ok:
            logger.debug("json_repair: parsed fenced block")
            return value

    sliced = balanced_slice(text)
    if sliced is not None:
        ok, value = _loads(sliced)
        if ok:
            logger.debug("json_repair: parsed balanced slice")
            return value

    sources = [block, text] if block is not None else [text]
    for source in sources:
        cleaned = clean_json_text(source)
        ok, value = _loads(cleaned, strict=False)
        if ok:
            logger.debug("json_repair: parsed after repair pass")
            return value
        sliced = balanced_slice(cleaned)
        if sliced is not None:
            ok, value = _loads(sliced, strict=False)
            if ok:
                logger.debug("json_repair: parsed balanced slice after repair pass")
                return value

    logger.debug("json_repair: all strategies failed", extra={"text_len": len(text)})
    return None


def _recover_field(text: str, key: str, opener: str) -> Any | None:
    closer = _PAIRS[opener]
    m = re.search(r'"%s"\s*:\s*' % re.escape(key), text)
    if m is None:
        return None
    pos = m.end()
    if pos < len(text) and text[pos] == opener:
        sliced = balanced_slice(text, pos)
        if sliced is not None:
            for candidate in (sliced, clean_json_text(sliced)):
                ok, value = _loads(candidate, strict=False)
                if ok:
                    return value
    # Non-greedy capture up to the first closer; truncated output usually still fails here
    lazy = re.search(
        r'"%s"\s*:\s*\%s([\s\S]*?)\%s' % (re.escape(key), opener, closer),
        text,
    )
    if lazy is None:
        return None
    ok, value = _loads(opener + lazy.group(1) + closer, strict=False)
    return value if ok else None


def recover_partial_fields(text: Any) -> dict[str, Any]:
    """
    Salvage keywords / elements / patterns independently by name.
    Each field that cannot be recovered defaults to an empty collection.
    """
    out: dict[str, Any] = {"keywords": [], "elements": [], "patterns": {}}
    if not isinstance(text, str):
        return out
    for key, opener, kind in (("keywords", "[", list), ("elements", "[", list), ("patterns", "{", dict)):
        value = _recover_field(text, key, opener)
        if isinstance(value, kind):
            out[key] = value
    return out
