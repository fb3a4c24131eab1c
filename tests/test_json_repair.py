"""JSON repair cascade and partial-field recovery."""
from __future__ import annotations

import pytest

from templex.extraction.json_repair import (
    balanced_slice,
    clean_json_text,
    extract_structured,
    recover_partial_fields,
)


# ---- Cascade ----
def test_direct_parse():
    assert extract_structured('{"a": 1, "b": [true, null]}') == {"a": 1, "b": [True, None]}


def test_fenced_json_block():
    assert extract_structured('```json\n{"a":1}\n```') == {"a": 1}


def test_fenced_block_without_tag_and_prose():
    text = 'Here is the analysis:\n```\n{"a": [1, 2]}\n```\nHope this helps.'
    assert extract_structured(text) == {"a": [1, 2]}


def test_tilde_fence():
    assert extract_structured('~~~json\n{"ok": true}\n~~~') == {"ok": True}


def test_trailing_comma_repair():
    assert extract_structured('{"a":1,}') == {"a": 1}


def test_balanced_scan_skips_brackets_inside_strings():
    text = 'Result: {"a": "}{", "b": "say \\"hi\\" {"} and some trailing prose }'
    assert extract_structured(text) == {"a": "}{", "b": 'say "hi" {'}


def test_balanced_scan_top_level_array():
    assert extract_structured('The list: [1, [2, 3], "]"] done') == [1, [2, 3], "]"]


def test_comments_and_bare_keys():
    text = '{a: 1, // note\n b: [1, 2,], /* block */ c: "http://example.com"}'
    assert extract_structured(text) == {"a": 1, "b": [1, 2], "c": "http://example.com"}


def test_repairs_leave_string_contents_alone():
    assert extract_structured('{"a": "x, y: z",}') == {"a": "x, y: z"}
    assert extract_structured('{"note": "list [1, 2,]", b: "say \\"k: v\\", ok"}') == {
        "note": "list [1, 2,]",
        "b": 'say "k: v", ok',
    }


def test_bom_and_zero_width_spaces():
    assert extract_structured("\ufeff{\"a\":\u200b 1}") == {"a": 1}


def test_raw_newline_inside_string_is_tolerated():
    value = extract_structured('{"a": "line1\nline2", "b": 2,}')
    assert value["b"] == 2
    assert value["a"].startswith("line1")


def test_nothing_parses_returns_none():
    assert extract_structured("no structured data here") is None


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "{",
        "}",
        "[[[[",
        '"unterminated',
        "```json\n{bad\n```",
        '{"a": [1, 2}',
        "{" * 5000,
        "[" * 50000,
        "\x00\x01\x02",
        "// only a comment",
        None,
        12345,
    ],
)
def test_extract_structured_never_raises(text):
    extract_structured(text)


# ---- Helpers ----
def test_balanced_slice_unclosed_returns_none():
    assert balanced_slice('{"a": {"b": 1}') is None


def test_balanced_slice_from_offset():
    text = 'x "k": [1, [2]] tail'
    assert balanced_slice(text, text.index("[")) == "[1, [2]]"


def test_clean_json_text_collapses_whitespace():
    assert clean_json_text('{\n  "a" :\t1 ,\n}') == '{ "a" : 1 }'


# ---- Partial recovery ----
def test_recover_partial_fields_from_truncated_output():
    text = (
        '{"keywords": ["a", "b"], '
        '"elements": [{"type": "heading", "level": 1, "content": "T"}], '
        '"patterns": {"introduction": "hook"}, '
        '"confidence": 0.9, "abstractTemplate": {"name": "X", "formula": "'
    )
    assert extract_structured(text) is None
    out = recover_partial_fields(text)
    assert out["keywords"] == ["a", "b"]
    assert out["elements"] == [{"type": "heading", "level": 1, "content": "T"}]
    assert out["patterns"] == {"introduction": "hook"}


def test_recover_partial_fields_defaults_to_empty():
    out = recover_partial_fields('"keywords": [broken, "elements": nope')
    assert out == {"keywords": [], "elements": [], "patterns": {}}


def test_recover_partial_fields_nested_arrays_use_balanced_scan():
    text = '"elements": [{"type": "list", "keywords": ["x", "y"]}, {"type": "quote"}] "patterns": {'
    out = recover_partial_fields(text)
    assert [e["type"] for e in out["elements"]] == ["list", "quote"]
    assert out["patterns"] == {}
