"""Inverted-index maintenance: lemma rows, frequencies and postings.

Invariant kept by this module: a lemma's ``frequency`` always equals the
number of postings that reference it.  Pages of one site are indexed by
several crawl threads at once and share lemma rows, so each lemma's
find-or-create, increment and posting insert run as one transaction.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Mapping

from searchengine.db.connection import transaction
from searchengine.db.lemmas import (
    delete_unused_lemmas,
    find_lemma,
    release_page,
    save_lemma,
)
from searchengine.db.models import Lemma, Page
from searchengine.db.pages import delete_page
from searchengine.db.postings import find_posting, save_posting

logger = logging.getLogger(__name__)


def apply_lemmas(
    conn: sqlite3.Connection,
    site_id: int,
    page_id: int,
    lemma_counts: Mapping[str, int],
) -> None:
    """Record that *page_id* contains each lemma of *lemma_counts*.

    For every ``(lemma, count)``: the lemma row is found or created with
    frequency 0; its frequency goes up by one if the page had no posting for
    it yet; the posting is written with ``rank = count``.

    Prior postings of the page are never deleted here; callers re-indexing a
    page call :func:`remove_page` first.
    """
    for text, count in lemma_counts.items():
        with transaction(conn):
            lemma = find_lemma(conn, site_id, text)
            if lemma is None:
                lemma = save_lemma(
                    conn, Lemma(id=0, site_id=site_id, lemma=text, frequency=0)
                )
            if find_posting(conn, page_id, lemma.id) is None:
                lemma.frequency += 1
                save_lemma(conn, lemma)
            save_posting(conn, page_id, lemma.id, count)

    logger.debug("Indexed page %s: %d lemma(s)", page_id, len(lemma_counts))


def remove_page(conn: sqlite3.Connection, page: Page) -> None:
    """Delete *page* with its postings and give back its lemma frequencies.

    Lemmas that no other page of the site uses are deleted as well.
    """
    with transaction(conn):
        release_page(conn, page.id)
        delete_page(conn, page.id)  # postings go via ON DELETE CASCADE
        dropped = delete_unused_lemmas(conn, page.site_id)

    logger.debug("Removed page %s%s (%d lemma(s) dropped)", page.site_id, page.path, dropped)
