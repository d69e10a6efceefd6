"""Question similarity, shared by the question strategist and the
consistency validator.

Two questions are treated as the same when, after stripping punctuation and
filler words, one's words are a subset of the other's, they share a synonym pair, or more
than half of their significant words overlap (with at least two shared).
Antonym pairs ("active" vs "retired") relate two questions with opposite
meaning, which matters for contradiction checks but never counts as a
duplicate.
"""

from __future__ import annotations

import re
from typing import Literal

STOPWORDS = frozenset({
    "is", "it", "a", "an", "the", "does", "do", "can", "will", "would", "they",
    "he", "she", "are", "were", "was", "did", "have", "has", "had", "of", "in",
    "to", "you", "your", "be", "or", "and", "its", "their", "them", "this",
    "that", "there", "usually", "typically", "commonly",
})

SYNONYM_PAIRS: tuple[tuple[str, str], ...] = (
    ("big", "large"),
    ("huge", "massive"),
    ("electronic", "digital"),
    ("male", "man"),
    ("carnivorous", "meat"),
    ("carnivore", "meat"),
    ("hold", "portable"),
    ("handheld", "hold"),
    ("active", "playing"),
    ("pet", "domesticated"),
    ("aquatic", "water"),
)

ANTONYM_PAIRS: tuple[tuple[str, str], ...] = (
    ("active", "retired"),
    ("alive", "dead"),
    ("current", "former"),
    ("living", "dead"),
    ("male", "female"),
    ("still", "former"),
)

Relation = Literal["same", "opposite"]

_NON_WORD = re.compile(r"[^a-z0-9\s]")


def normalize(question: str) -> str:
    cleaned = _NON_WORD.sub("", question.lower())
    return " ".join(w for w in cleaned.split() if w not in STOPWORDS)


def significant_words(question: str) -> set[str]:
    return {w for w in normalize(question).split() if len(w) > 2}


def _has_pair(words1: set[str], words2: set[str], pairs) -> bool:
    return any(
        (a in words1 and b in words2) or (b in words1 and a in words2)
        for a, b in pairs
    )


def word_overlap(q1: str, q2: str) -> tuple[float, int]:
    """(shared / larger word set, shared count) over significant words."""
    w1, w2 = significant_words(q1), significant_words(q2)
    if not w1 or not w2:
        return 0.0, 0
    shared = len(w1 & w2)
    return shared / max(len(w1), len(w2)), shared


def are_similar(q1: str, q2: str) -> bool:
    n1, n2 = normalize(q1), normalize(q2)
    if not n1 or not n2:
        return False
    w1, w2 = set(n1.split()), set(n2.split())
    if w1 <= w2 or w2 <= w1:
        return True
    if _has_pair(w1, w2, ANTONYM_PAIRS):
        return False
    if _has_pair(w1, w2, SYNONYM_PAIRS):
        return True
    ratio, shared = word_overlap(q1, q2)
    return ratio > 0.5 and shared >= 2


def relation(q1: str, q2: str) -> Relation | None:
    """How two questions relate: "same", "opposite", or unrelated (None)."""
    w1, w2 = set(normalize(q1).split()), set(normalize(q2).split())
    if _has_pair(w1, w2, ANTONYM_PAIRS):
        return "opposite"
    if are_similar(q1, q2):
        return "same"
    return None


def is_redundant(question: str, previous: list[str]) -> str | None:
    """Return the earlier question this one duplicates, if any."""
    for prev in previous:
        if are_similar(question, prev):
            return prev
    return None
