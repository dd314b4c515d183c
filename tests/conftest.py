"""Shared fixtures.

``FakeLemmaFinder`` stands in for pymorphy3 wherever the test is about
indexing or ranking rather than morphology: every lower-cased word is its
own lemma, minus a handful of service words.
"""

from __future__ import annotations

import re
import sqlite3
from collections import Counter
from typing import Generator

import pytest

from searchengine.db.connection import get_connection
from searchengine.db.migrations import init_db

_WORD_RE = re.compile(r"[a-zа-яё]+")
_SERVICE_WORDS = frozenset({"и", "в", "на", "the", "and", "of"})


class FakeLemmaFinder:
    def __init__(self) -> None:
        self.calls = 0

    def lemma_counts(self, text: str) -> dict[str, int]:
        self.calls += 1
        words = [w for w in _WORD_RE.findall(text.lower()) if w not in _SERVICE_WORDS]
        return dict(Counter(words))

    def lemma_set(self, text: str) -> set[str]:
        return set(self.lemma_counts(text))


@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory connection with the schema initialised."""
    connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def finder() -> FakeLemmaFinder:
    return FakeLemmaFinder()
