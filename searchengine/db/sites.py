"""CRUD operations for the ``sites`` table.

Deleting a site cascades (via foreign keys) to its pages, lemmas and
postings.
"""

from __future__ import annotations

import sqlite3
from time import time
from typing import Any, Optional

from searchengine.db.connection import transaction
from searchengine.db.models import Site, SiteStatus


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_site(row: sqlite3.Row) -> Site:
    return Site(
        id=row["id"],
        url=row["url"],
        name=row["name"],
        status=SiteStatus(row["status"]),
        status_time=row["status_time"],
        last_error=row["last_error"],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def create_site(
    conn: sqlite3.Connection,
    url: str,
    name: str,
    status: SiteStatus = SiteStatus.INDEXING,
) -> Site:
    """Insert a new site row and return it.

    Raises:
        sqlite3.IntegrityError: If a site with the same ``url`` exists.
    """
    with transaction(conn):
        cursor = conn.execute(
            """
            INSERT INTO sites (url, name, status, status_time, last_error)
            VALUES (?, ?, ?, ?, NULL)
            """,
            (url, name, status.value, int(time())),
        )
    return get_site(conn, cursor.lastrowid)  # type: ignore[arg-type,return-value]


def get_site(conn: sqlite3.Connection, site_id: int) -> Optional[Site]:
    """Fetch a single site by id.  Returns ``None`` if not found."""
    row = conn.execute("SELECT * FROM sites WHERE id = ?", (site_id,)).fetchone()
    return _row_to_site(row) if row else None


def find_site_by_url(conn: sqlite3.Connection, url: str) -> Optional[Site]:
    """Fetch the site whose configured root url is exactly *url*."""
    row = conn.execute("SELECT * FROM sites WHERE url = ?", (url,)).fetchone()
    return _row_to_site(row) if row else None


def list_sites(conn: sqlite3.Connection) -> list[Site]:
    """Return every site in insertion order."""
    rows = conn.execute("SELECT * FROM sites ORDER BY id").fetchall()
    return [_row_to_site(r) for r in rows]


def update_site(conn: sqlite3.Connection, site_id: int, **kwargs: Any) -> Site:
    """Update one or more fields on a site.

    Allowed keyword arguments: ``name``, ``status`` (:class:`SiteStatus`),
    ``last_error``.  ``status_time`` is always refreshed.

    Raises:
        ValueError: If ``site_id`` does not exist or a field is not allowed.
    """
    allowed = {"name", "status", "last_error"}
    updates: dict[str, Any] = {}
    for key, value in kwargs.items():
        if key not in allowed:
            raise ValueError(f"Cannot update field {key!r}")
        updates[key] = value.value if isinstance(value, SiteStatus) else value

    updates["status_time"] = int(time())
    set_clause = ", ".join(f"{col} = ?" for col in updates)
    values = list(updates.values()) + [site_id]

    with transaction(conn):
        cursor = conn.execute(
            f"UPDATE sites SET {set_clause} WHERE id = ?", values  # noqa: S608
        )
    if cursor.rowcount == 0:
        raise ValueError(f"Site not found: {site_id!r}")

    return get_site(conn, site_id)  # type: ignore[return-value]


def delete_site(conn: sqlite3.Connection, site_id: int) -> None:
    """Delete a site and everything it owns.  No-op if it does not exist."""
    with transaction(conn):
        conn.execute("DELETE FROM sites WHERE id = ?", (site_id,))
