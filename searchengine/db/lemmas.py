"""CRUD operations for the ``lemmas`` table."""

from __future__ import annotations

import sqlite3
from typing import Iterable, Optional

from searchengine.db.connection import transaction
from searchengine.db.models import Lemma


def _row_to_lemma(row: sqlite3.Row) -> Lemma:
    return Lemma(
        id=row["id"],
        site_id=row["site_id"],
        lemma=row["lemma"],
        frequency=row["frequency"],
    )


def find_lemma(conn: sqlite3.Connection, site_id: int, text: str) -> Optional[Lemma]:
    row = conn.execute(
        "SELECT * FROM lemmas WHERE site_id = ? AND lemma = ?", (site_id, text)
    ).fetchone()
    return _row_to_lemma(row) if row else None


def list_lemmas(
    conn: sqlite3.Connection,
    site_id: int,
    texts: Optional[Iterable[str]] = None,
) -> list[Lemma]:
    """Return the site's lemmas, optionally only those whose text is in *texts*."""
    if texts is None:
        rows = conn.execute(
            "SELECT * FROM lemmas WHERE site_id = ? ORDER BY id", (site_id,)
        ).fetchall()
        return [_row_to_lemma(r) for r in rows]

    wanted = list(texts)
    if not wanted:
        return []
    placeholders = ",".join("?" for _ in wanted)
    rows = conn.execute(
        f"SELECT * FROM lemmas WHERE site_id = ? AND lemma IN ({placeholders}) "  # noqa: S608
        "ORDER BY id",
        [site_id, *wanted],
    ).fetchall()
    return [_row_to_lemma(r) for r in rows]


def count_lemmas(conn: sqlite3.Connection, site_id: int) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM lemmas WHERE site_id = ?", (site_id,)
    ).fetchone()
    return row[0]


def save_lemma(conn: sqlite3.Connection, lemma: Lemma) -> Lemma:
    """Persist *lemma*: insert when ``lemma.id`` is 0, update otherwise."""
    with transaction(conn):
        if not lemma.id:
            cursor = conn.execute(
                "INSERT INTO lemmas (site_id, lemma, frequency) VALUES (?, ?, ?)",
                (lemma.site_id, lemma.lemma, lemma.frequency),
            )
            lemma.id = cursor.lastrowid  # type: ignore[assignment]
        else:
            conn.execute(
                "UPDATE lemmas SET frequency = ? WHERE id = ?",
                (lemma.frequency, lemma.id),
            )
    return lemma


def delete_lemmas_by_site(conn: sqlite3.Connection, site_id: int) -> None:
    with transaction(conn):
        conn.execute("DELETE FROM lemmas WHERE site_id = ?", (site_id,))


def release_page(conn: sqlite3.Connection, page_id: int) -> None:
    """Decrement the frequency of every lemma the page has a posting for."""
    with transaction(conn):
        conn.execute(
            """
            UPDATE lemmas SET frequency = frequency - 1
            WHERE id IN (SELECT lemma_id FROM postings WHERE page_id = ?)
            """,
            (page_id,),
        )


def delete_unused_lemmas(conn: sqlite3.Connection, site_id: int) -> int:
    """Drop the site's lemmas no page refers to any more; return how many."""
    with transaction(conn):
        cursor = conn.execute(
            "DELETE FROM lemmas WHERE site_id = ? AND frequency <= 0", (site_id,)
        )
    return cursor.rowcount
