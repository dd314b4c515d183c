"""Lemma extraction with the real pymorphy3 Russian dictionaries."""

from __future__ import annotations

import pytest

from searchengine.morphology import LemmaFinder, get_lemma_finder


@pytest.fixture(scope="module")
def lemma_finder() -> LemmaFinder:
    return get_lemma_finder()


class TestLemmaCounts:
    def test_counts_inflected_forms_together(self, lemma_finder: LemmaFinder) -> None:
        counts = lemma_finder.lemma_counts(
            "Повторное появление леопарда в Осетии позволяет предположить, "
            "что леопард постоянно обитает в некоторых районах Северного Кавказа."
        )
        assert counts["леопард"] == 2
        assert "осетия" in counts
        assert "кавказ" in counts

    def test_service_words_dropped(self, lemma_finder: LemmaFinder) -> None:
        counts = lemma_finder.lemma_counts("Кот и пёс сидели в доме, но не спали.")
        assert "и" not in counts
        assert "в" not in counts
        assert "но" not in counts
        assert "кот" in counts

    def test_non_cyrillic_ignored(self, lemma_finder: LemmaFinder) -> None:
        assert lemma_finder.lemma_counts("Hello world 2024 !!!") == {}

    def test_empty(self, lemma_finder: LemmaFinder) -> None:
        assert lemma_finder.lemma_counts("") == {}


class TestLemmaSet:
    def test_matches_count_keys(self, lemma_finder: LemmaFinder) -> None:
        text = "Леопарды и леопард живут в горах"
        assert lemma_finder.lemma_set(text) == set(lemma_finder.lemma_counts(text))

    def test_distinct(self, lemma_finder: LemmaFinder) -> None:
        assert lemma_finder.lemma_set("леопард леопарда леопарды") == {"леопард"}
