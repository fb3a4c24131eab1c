"""Similarity engine."""
from __future__ import annotations

import pytest

from templex.extraction.similarity import (
    edit_distance,
    element_similarity,
    set_similarity,
    string_similarity,
)


# ---- Strings ----
def test_edit_distance_classic():
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("", "abc") == 3
    assert edit_distance("same", "same") == 0


def test_edit_distance_is_case_sensitive():
    assert edit_distance("A", "a") == 1


def test_string_similarity_bounds_and_case():
    assert string_similarity("Hello", "hello") == 1.0
    assert string_similarity("", "") == 1.0
    assert string_similarity(None, None) == 1.0
    assert string_similarity("abc", "") == 0.0
    assert string_similarity("abcd", "abcx") == pytest.approx(0.75)


def test_set_similarity_jaccard():
    assert set_similarity(["a", "B"], ["b", "c"]) == pytest.approx(1 / 3)
    assert set_similarity([], []) == 1.0
    assert set_similarity(["a"], []) == 0.0


# ---- Elements ----
def test_identical_elements_score_one(el):
    e = el("paragraph", content="Backups matter", intent="motivate", keywords=["backup"])
    assert element_similarity(e, e) == pytest.approx(1.0)


def test_different_kinds_score_zero(el):
    assert element_similarity(el("paragraph", content="x"), el("quote", content="x")) == 0.0


def test_heading_level_proximity(el):
    h1 = el("heading", level=1)
    assert element_similarity(h1, el("heading", level=1)) == 1.0
    assert element_similarity(h1, el("heading", level=2)) == 0.5
    assert element_similarity(h1, el("heading", level=3)) == 0.0


def test_weighted_blend(el):
    e1 = el("paragraph", content="abcd", intent="same", keywords=["k"])
    e2 = el("paragraph", content="abcx", intent="same", keywords=["k"])
    # 0.2 level + 0.4 * 0.75 content + 0.2 intent + 0.2 keywords
    assert element_similarity(e1, e2) == pytest.approx(0.9)


def test_similarity_is_symmetric(el):
    e1 = el("heading", level=2, content="Intro", intent="context", keywords=["a", "b"])
    e2 = el("heading", level=3, content="Introduction", keywords=["b"])
    assert element_similarity(e1, e2) == pytest.approx(element_similarity(e2, e1))
    assert 0.0 <= element_similarity(e1, e2) <= 1.0
