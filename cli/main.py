"""Site search CLI: entry-point for all backend operations.

Usage:
    python cli/main.py --help

Commands:
    db init      → create the SQLite schema
    crawl        → rebuild the index of every configured site
    index-page   → re-index a single page
    search       → ranked keyword query
    stats        → index statistics
    serve        → run the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that
# `from searchengine.xxx import ...` works when the CLI is invoked as
# `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import typer

from searchengine.config import settings
from searchengine.logs import setup_logging

from cli.commands.indexing import crawl, index_page, stats
from cli.commands.search import search
from cli.context import open_store

app = typer.Typer(
    name="searchengine",
    help="Site search engine CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Configure logging before any command runs."""
    setup_logging("DEBUG" if verbose else settings.log_level)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    with open_store():
        pass
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Indexing and search
# ---------------------------------------------------------------------------
app.command("crawl")(crawl)
app.command("index-page")(index_page)
app.command("stats")(stats)
app.command("search")(search)


# ---------------------------------------------------------------------------
# HTTP API
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Serve the REST API (``/api/...``) with uvicorn."""
    import uvicorn

    uvicorn.run("searchengine.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
