"""CRUD operations for the ``pages`` table."""

from __future__ import annotations

import sqlite3
from typing import Optional

from searchengine.db.connection import transaction
from searchengine.db.models import Page


def _row_to_page(row: sqlite3.Row) -> Page:
    return Page(
        id=row["id"],
        site_id=row["site_id"],
        path=row["path"],
        code=row["code"],
        content=row["content"],
    )


def save_page(
    conn: sqlite3.Connection,
    site_id: int,
    path: str,
    code: int,
    content: str,
) -> Page:
    """Insert the page at ``(site_id, path)``, or overwrite its status and body.

    Existing postings are left alone; callers re-indexing a page remove it
    first (see :func:`searchengine.indexing.builder.remove_page`).
    """
    with transaction(conn):
        conn.execute(
            """
            INSERT INTO pages (site_id, path, code, content)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (site_id, path)
            DO UPDATE SET code = excluded.code, content = excluded.content
            """,
            (site_id, path, code, content or ""),
        )
        page = find_page(conn, site_id, path)
    return page  # type: ignore[return-value]


def get_page(conn: sqlite3.Connection, page_id: int) -> Optional[Page]:
    row = conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()
    return _row_to_page(row) if row else None


def find_page(conn: sqlite3.Connection, site_id: int, path: str) -> Optional[Page]:
    """Fetch the page stored at *path* for *site_id*.  ``None`` if absent."""
    row = conn.execute(
        "SELECT * FROM pages WHERE site_id = ? AND path = ?", (site_id, path)
    ).fetchone()
    return _row_to_page(row) if row else None


def page_exists(conn: sqlite3.Connection, site_id: int, path: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM pages WHERE site_id = ? AND path = ?", (site_id, path)
    ).fetchone()
    return row is not None


def list_pages(conn: sqlite3.Connection, site_id: int) -> list[Page]:
    rows = conn.execute(
        "SELECT * FROM pages WHERE site_id = ? ORDER BY id", (site_id,)
    ).fetchall()
    return [_row_to_page(r) for r in rows]


def count_pages(conn: sqlite3.Connection, site_id: int) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM pages WHERE site_id = ?", (site_id,)
    ).fetchone()
    return row[0]


def delete_page(conn: sqlite3.Connection, page_id: int) -> None:
    """Delete one page; its postings go with it via CASCADE."""
    with transaction(conn):
        conn.execute("DELETE FROM pages WHERE id = ?", (page_id,))


def delete_pages_by_site(conn: sqlite3.Connection, site_id: int) -> None:
    with transaction(conn):
        conn.execute("DELETE FROM pages WHERE site_id = ?", (site_id,))
