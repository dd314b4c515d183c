"""The ``search`` command."""

from __future__ import annotations

from typing import Optional

import typer

from searchengine.errors import InputError
from searchengine.search import search as run_search

from cli.context import open_store


def search(
    query: str = typer.Argument(..., help="Search query."),
    site: Optional[str] = typer.Option(None, "--site", help="Restrict to this site url."),
    offset: int = typer.Option(0, "--offset", min=0, help="Results to skip."),
    limit: int = typer.Option(20, "--limit", min=1, help="Maximum results."),
) -> None:
    """Run a ranked keyword query against the index."""
    with open_store() as conn:
        try:
            results = run_search(conn, query, site_url=site, offset=offset, limit=limit)
        except InputError as exc:
            typer.echo(f"❌ {exc}")
            raise typer.Exit(code=1)

    if not results:
        typer.echo(f"No results for {query!r}.")
        return
    for r in results:
        typer.echo(f"{r.relevance:.3f}  {r.site}{r.uri}  {r.title}")
        typer.echo(f"       {r.snippet}")
