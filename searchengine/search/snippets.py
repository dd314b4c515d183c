"""Snippet building for search results.

Lemmas (not the user's words) are looked up in the page text as plain
case-insensitive substrings.  An inflected form whose stem differs from the
lemma ("леса" for "лес" works, "шёл" for "идти" does not) is missed; the
snippet then falls back to the start of the page.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

SNIPPET_RADIUS = 100
FALLBACK_LENGTH = 200


def _lemma_pattern(lemmas: Iterable[str]) -> Optional[re.Pattern[str]]:
    # Longest first so "кот" never wins over "котёнок" at the same offset.
    words = sorted({w for w in lemmas if w}, key=len, reverse=True)
    if not words:
        return None
    return re.compile("|".join(re.escape(w) for w in words), re.IGNORECASE)


def highlight(fragment: str, lemmas: Iterable[str]) -> str:
    """Wrap every case-insensitive occurrence of any lemma in ``<b>…</b>``."""
    pattern = _lemma_pattern(lemmas)
    if pattern is None:
        return fragment
    return pattern.sub(lambda m: f"<b>{m.group(0)}</b>", fragment)


def make_snippet(text: str, lemmas: Iterable[str]) -> str:
    """Return the text around the first lemma occurrence, highlighted.

    The window spans up to :data:`SNIPPET_RADIUS` characters on each side of
    where the earliest match starts.  Without any match the first
    :data:`FALLBACK_LENGTH` characters are returned as is.
    """
    lemmas = list(lemmas)
    pattern = _lemma_pattern(lemmas)
    match = pattern.search(text) if pattern is not None else None
    if match is None:
        return text[:FALLBACK_LENGTH]

    start = max(0, match.start() - SNIPPET_RADIUS)
    end = min(len(text), match.start() + SNIPPET_RADIUS)
    return highlight(text[start:end], lemmas)
