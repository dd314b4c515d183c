"""Shared helpers for CLI commands.

Every command works on the store at ``settings.db_path``; ``open_store``
creates the workspace and schema on first use.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from functools import wraps
from typing import Callable, Iterator

import typer
from searchengine.config import settings
from searchengine.db import get_connection, init_db


@contextmanager
def open_store() -> Iterator[sqlite3.Connection]:
    """Yield an initialised connection and close it afterwards."""
    settings.ensure_workspace()
    conn = get_connection()
    init_db(conn)
    try:
        yield conn
    finally:
        conn.close()


def require_sites(func: Callable) -> Callable:
    """Decorator for CLI commands that need at least one configured site.

    Aborts execution when the sites file is missing or empty.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        if not settings.sites:
            typer.echo(f"❌ No sites configured in {settings.sites_file}.")
            typer.echo("Copy sites.example.yaml to sites.yaml and list the sites to index.")
            raise typer.Exit(code=1)
        return func(*args, **kwargs)

    return wrapper
