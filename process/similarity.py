"""Title similarity – normalised Levenshtein distance."""

from __future__ import annotations

from typing import Iterable

from rapidfuzz.distance import Levenshtein

TITLE_SIMILARITY_THRESHOLD = 0.85


def similarity(a: str, b: str) -> float:
    """``1 - distance / max(len)``; case-sensitive, no trimming.

    Two empty strings count as identical (1.0); one empty string scores 0.0.
    """
    return Levenshtein.normalized_similarity(a, b)


def is_similar_title(
    title: str,
    other_titles: Iterable[str],
    threshold: float = TITLE_SIMILARITY_THRESHOLD,
) -> bool:
    """True if *title* (lowercased) scores above *threshold* against any of
    *other_titles*, which the caller has already lowercased."""
    normalized = (title or "").lower()
    for other in other_titles:
        if similarity(normalized, other) > threshold:
            return True
    return False
