"""Similarity engine: edit distance, Jaccard over terms, weighted element similarity."""
from __future__ import annotations

from collections.abc import Iterable

from templex.extraction.schema import StructuralElement

# element_similarity weights; content carries the substantive signal
LEVEL_WEIGHT = 0.2
CONTENT_WEIGHT = 0.4
INTENT_WEIGHT = 0.2
KEYWORDS_WEIGHT = 0.2


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance via the full DP matrix. Case-sensitive."""
    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j
    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if a[i - 1] == b[j - 1]:
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = 1 + min(dp[i - 1][j], dp[i][j - 1], dp[i - 1][j - 1])
    return dp[m][n]


def string_similarity(a: str | None, b: str | None) -> float:
    """1 - normalized edit distance, case-insensitive. Both empty -> 1.0, one empty -> 0.0."""
    a = a or ""
    b = b or ""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    distance = edit_distance(a.lower(), b.lower())
    return 1.0 - distance / max(len(a), len(b))


def set_similarity(a: Iterable[str] | None, b: Iterable[str] | None) -> float:
    """Case-insensitive Jaccard. Both empty -> 1.0, one empty -> 0.0."""
    s1 = {t.lower() for t in (a or [])}
    s2 = {t.lower() for t in (b or [])}
    if not s1 and not s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    return len(s1 & s2) / len(s1 | s2)


def _level_score(e1: StructuralElement, e2: StructuralElement) -> float:
    if e1.kind != "heading":
        return 1.0
    if e1.level == e2.level:
        return 1.0
    if e1.level is not None and e2.level is not None and abs(e1.level - e2.level) == 1:
        return 0.5
    return 0.0


def _is_bare(e: StructuralElement) -> bool:
    return not e.content and not e.intent and not e.keywords


def element_similarity(e1: StructuralElement, e2: StructuralElement) -> float:
    """0 across kinds; otherwise a weighted blend of level, content, intent and keywords."""
    if e1.kind != e2.kind:
        return 0.0
    level = _level_score(e1, e2)
    if _is_bare(e1) and _is_bare(e2):
        return level
    return (
        level * LEVEL_WEIGHT
        + string_similarity(e1.content, e2.content) * CONTENT_WEIGHT
        + string_similarity(e1.intent, e2.intent) * INTENT_WEIGHT
        + set_similarity(e1.keywords, e2.keywords) * KEYWORDS_WEIGHT
    )
