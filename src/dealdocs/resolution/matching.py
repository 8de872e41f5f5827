"""Name matching primitives used by the resolver's fallback strategies.

All functions are pure and operate on bare file names (no directories).
"""

from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

IDENTIFIER_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

MIN_KEYWORD_LENGTH = 3
DEFAULT_MAX_KEYWORDS = 5


def extract_identifier(name: str) -> str | None:
    """Return the first UUID-shaped token in a name, lower-cased."""
    match = IDENTIFIER_PATTERN.search(name)
    return match.group(0).lower() if match else None


def normalize_name(name: str) -> str:
    """Lower-case a name and strip every non-alphanumeric character."""
    return _NON_ALNUM.sub("", name.lower())


def similarity_ratio(a: str, b: str) -> float:
    """Edit-distance similarity of two names after normalization.

    Computed as (max_len - levenshtein(a, b)) / max_len over the normalized
    names. Two names that normalize to nothing score 0.0.

    Args:
        a: First name.
        b: Second name.

    Returns:
        Ratio in [0, 1]; 1.0 means identical after normalization.
    """
    left = normalize_name(a)
    right = normalize_name(b)
    longest = max(len(left), len(right))
    if longest == 0:
        return 0.0
    return (longest - Levenshtein.distance(left, right)) / longest


def extract_keywords(name: str, max_keywords: int = DEFAULT_MAX_KEYWORDS) -> frozenset[str]:
    """Tokenize a name into its first distinct words longer than two characters.

    Args:
        name: File name.
        max_keywords: Cap on the number of keywords kept.

    Returns:
        Set of lower-cased keywords.
    """
    keywords: list[str] = []
    for word in _NON_ALNUM.sub(" ", name.lower()).split():
        if len(word) < MIN_KEYWORD_LENGTH or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) == max_keywords:
            break
    return frozenset(keywords)


def jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    """Jaccard overlap |a & b| / |a | b|; 0.0 when both are empty."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)
