"""Russian lemma extraction on top of pymorphy3.

Text is lower-cased and reduced to Cyrillic words (hyphens kept).  A word is
dropped when *any* of its possible parses is a service part of speech
(conjunction, preposition, particle, interjection): such words carry no
meaning for search.  Every other word counts towards its first normal form.

Usage::

    from searchengine.morphology import get_lemma_finder

    get_lemma_finder().lemma_counts("Леопард, леопарды!")   # {"леопард": 2}
"""

from __future__ import annotations

import re
from collections import Counter
from functools import lru_cache
from typing import Optional, Protocol

import pymorphy3

_NON_WORD_RE = re.compile(r"[^а-яё\s-]")
_WORD_RE = re.compile(r"^[а-яё-]+$")

# OpenCorpora tags for conjunctions, prepositions, particles, interjections.
SERVICE_POS = frozenset({"CONJ", "PREP", "PRCL", "INTJ"})


class LemmaExtractor(Protocol):
    """What the indexer and the search engine need from a lemmatizer."""

    def lemma_counts(self, text: str) -> dict[str, int]: ...

    def lemma_set(self, text: str) -> set[str]: ...


class LemmaFinder:
    """Turns raw text into lemma counts using a pymorphy3 analyzer."""

    def __init__(self, analyzer: Optional[pymorphy3.MorphAnalyzer] = None) -> None:
        self._morph = analyzer or pymorphy3.MorphAnalyzer(lang="ru")

    def _words(self, text: str) -> list[str]:
        return _NON_WORD_RE.sub(" ", text.lower()).split()

    def normal_form(self, word: str) -> Optional[str]:
        """Return the lemma of a single lower-case *word*, or ``None`` to skip it."""
        if not _WORD_RE.match(word) or not word.strip("-"):
            return None
        parses = self._morph.parse(word)
        if not parses:
            return None
        if any(p.tag.POS in SERVICE_POS for p in parses):
            return None
        return parses[0].normal_form

    def lemma_counts(self, text: str) -> dict[str, int]:
        """Map every lemma found in *text* to its number of occurrences."""
        counts: Counter[str] = Counter()
        for word in self._words(text):
            lemma = self.normal_form(word)
            if lemma:
                counts[lemma] += 1
        return dict(counts)

    def lemma_set(self, text: str) -> set[str]:
        """Distinct lemmas of *text*, normalised exactly like :meth:`lemma_counts`.

        Queries must reduce to the same forms the index stores, so this is the
        key set of :meth:`lemma_counts` rather than every possible normal form.
        """
        return set(self.lemma_counts(text))


@lru_cache(maxsize=1)
def get_lemma_finder() -> LemmaFinder:
    """Process-wide :class:`LemmaFinder`; loading the dictionaries is slow."""
    return LemmaFinder()
