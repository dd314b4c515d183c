"""CRUD operations for the ``postings`` table (the inverted index proper)."""

from __future__ import annotations

import sqlite3
from typing import Optional

from searchengine.db.connection import transaction
from searchengine.db.models import Posting


def _row_to_posting(row: sqlite3.Row) -> Posting:
    return Posting(
        id=row["id"],
        page_id=row["page_id"],
        lemma_id=row["lemma_id"],
        rank=row["rank"],
    )


def save_posting(
    conn: sqlite3.Connection, page_id: int, lemma_id: int, rank: float
) -> Posting:
    """Insert a posting linking *page_id* to *lemma_id*.

    A pair that already has a posting keeps its row and gets the new rank.
    """
    with transaction(conn):
        conn.execute(
            """
            INSERT INTO postings (page_id, lemma_id, rank) VALUES (?, ?, ?)
            ON CONFLICT (page_id, lemma_id) DO UPDATE SET rank = excluded.rank
            """,
            (page_id, lemma_id, float(rank)),
        )
        posting = find_posting(conn, page_id, lemma_id)
    return posting  # type: ignore[return-value]


def find_posting(
    conn: sqlite3.Connection, page_id: int, lemma_id: int
) -> Optional[Posting]:
    row = conn.execute(
        "SELECT * FROM postings WHERE page_id = ? AND lemma_id = ?",
        (page_id, lemma_id),
    ).fetchone()
    return _row_to_posting(row) if row else None


def postings_by_page(conn: sqlite3.Connection, page_id: int) -> list[Posting]:
    rows = conn.execute(
        "SELECT * FROM postings WHERE page_id = ? ORDER BY id", (page_id,)
    ).fetchall()
    return [_row_to_posting(r) for r in rows]


def postings_by_lemma(conn: sqlite3.Connection, lemma_id: int) -> list[Posting]:
    rows = conn.execute(
        "SELECT * FROM postings WHERE lemma_id = ? ORDER BY id", (lemma_id,)
    ).fetchall()
    return [_row_to_posting(r) for r in rows]


def delete_postings_by_page(conn: sqlite3.Connection, page_id: int) -> None:
    with transaction(conn):
        conn.execute("DELETE FROM postings WHERE page_id = ?", (page_id,))


def delete_postings_by_site(conn: sqlite3.Connection, site_id: int) -> None:
    with transaction(conn):
        conn.execute(
            "DELETE FROM postings WHERE page_id IN (SELECT id FROM pages WHERE site_id = ?)",
            (site_id,),
        )
