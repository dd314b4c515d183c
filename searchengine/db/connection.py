"""SQLite connection factory.

Usage::

    from searchengine.db.connection import get_connection, transaction

    conn = get_connection()
    with transaction(conn):
        conn.execute("DELETE FROM sites WHERE id = ?", (site_id,))

One connection is shared by the API handlers and every crawl thread.  Reads
may run from any thread; writes must go through :func:`transaction`, which
holds the connection's lock for the whole BEGIN…COMMIT so that two threads
never interleave statements inside one transaction.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from searchengine.config import settings


class LockedConnection(sqlite3.Connection):
    """A :class:`sqlite3.Connection` carrying a re-entrant write lock.

    ``depth`` counts the :func:`transaction` blocks currently open on it; it
    is only touched by the thread holding ``lock``.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.lock = threading.RLock()
        self.depth = 0


def get_connection(db_path: Optional[Path] = None) -> LockedConnection:
    """Open and configure a SQLite connection.

    Steps performed on every new connection:
    1. Enable ``PRAGMA foreign_keys = ON`` (cascading deletes rely on it).
    2. Switch to WAL journal mode for concurrent readers.

    Args:
        db_path: Override the DB path.  Defaults to ``settings.db_path``.

    Returns:
        A configured :class:`LockedConnection` with ``row_factory`` set to
        :class:`sqlite3.Row` so columns can be accessed by name.
    """
    path = db_path or settings.db_path

    # Create parent directory if needed (no-op for `:memory:`)
    if str(path) != ":memory:":
        settings.ensure_workspace()

    conn = sqlite3.connect(
        str(path), check_same_thread=False, factory=LockedConnection
    )
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")

    return conn  # type: ignore[return-value]


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Serialise a write block on *conn* and commit it (or roll back on error).

    Re-entrant: only the outermost block opens and commits the transaction.
    A nested block runs inside a SAVEPOINT, so its failure undoes its own
    writes and leaves the enclosing block free to roll back the rest.  The
    lock is held until the outermost block ends.
    """
    lock = getattr(conn, "lock", None)
    if lock is None:
        with conn:
            yield conn
        return

    with lock:
        if conn.depth:  # type: ignore[attr-defined]
            savepoint = f"sp_{conn.depth}"  # type: ignore[attr-defined]
            conn.depth += 1  # type: ignore[attr-defined]
            conn.execute(f"SAVEPOINT {savepoint}")
            try:
                yield conn
            except BaseException:
                conn.execute(f"ROLLBACK TO {savepoint}")
                conn.execute(f"RELEASE {savepoint}")
                raise
            else:
                conn.execute(f"RELEASE {savepoint}")
            finally:
                conn.depth -= 1  # type: ignore[attr-defined]
            return

        conn.depth = 1  # type: ignore[attr-defined]
        try:
            if not conn.in_transaction:
                conn.execute("BEGIN")
            with conn:
                yield conn
        finally:
            conn.depth = 0  # type: ignore[attr-defined]
