"""
Keyword extraction helpers for the connection analyzer and cluster labels.

Behaviour is intentionally fixed (hard-coded stop word list, regex cleanup) so
that connection weights are stable across environments and easy to reason about.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, List, Sequence, Set

import numpy as np

# A lightweight, hard-coded English stop word list.
STOP_WORDS: Set[str] = {
    "the",
    "a",
    "an",
    "and",
    "or",
    "but",
    "in",
    "on",
    "at",
    "to",
    "for",
    "of",
    "with",
    "by",
    "is",
    "are",
    "was",
    "were",
    "be",
    "been",
    "being",
    "have",
    "has",
    "had",
    "do",
    "does",
    "did",
    "will",
    "would",
    "could",
    "should",
    "may",
    "might",
    "can",
    "this",
    "that",
    "these",
    "those",
    "i",
    "you",
    "he",
    "she",
    "it",
    "we",
    "they",
    "me",
    "him",
    "her",
    "us",
    "them",
    "my",
    "your",
    "his",
    "its",
    "our",
    "their",
}

_NON_WORD_RE = re.compile(r"[^\w\s]")
_NUMERIC_RE = re.compile(r"^\d+$")


def tokenize_keywords(text: str) -> List[str]:
    """
    Split free text into keyword tokens.

    - Lowercases
    - Replaces non-word characters with spaces
    - Splits on whitespace
    - Drops tokens of length <= 2, purely numeric tokens and stop words

    Duplicates are kept so callers can build term-frequency vectors.
    """
    text = (text or "").lower()
    text = _NON_WORD_RE.sub(" ", text)
    tokens: List[str] = []
    for token in text.split():
        if len(token) <= 2:
            continue
        if token in STOP_WORDS:
            continue
        if _NUMERIC_RE.match(token):
            continue
        tokens.append(token)
    return tokens


def extract_keywords(title: str, tags: Iterable[str]) -> List[str]:
    """Keywords for a node: its title followed by its tags."""
    return tokenize_keywords(f"{title or ''} {' '.join(tags or [])}")


def build_vocabulary(*keyword_lists: Sequence[str]) -> List[str]:
    """Union vocabulary over keyword lists, in first-seen order."""
    seen: Set[str] = set()
    vocabulary: List[str] = []
    for keywords in keyword_lists:
        for word in keywords:
            if word not in seen:
                seen.add(word)
                vocabulary.append(word)
    return vocabulary


def term_frequency_vector(keywords: Sequence[str], vocabulary: Sequence[str]) -> np.ndarray:
    """Raw term counts of ``keywords`` laid out over ``vocabulary``."""
    counts = Counter(keywords)
    return np.array([counts.get(word, 0) for word in vocabulary], dtype=float)


def top_keywords(keyword_lists: Iterable[Sequence[str]], top_k: int = 5) -> List[str]:
    """
    Most frequent keywords across several keyword lists.

    Ties are broken alphabetically so the result is deterministic.
    """
    counter: Counter = Counter()
    for keywords in keyword_lists:
        counter.update(keywords)
    ranked = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
    return [word for word, _ in ranked[:top_k]]
