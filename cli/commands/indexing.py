"""Commands that build and inspect the index of the configured sites."""

from __future__ import annotations

import json
from typing import Optional

import typer

from searchengine.config import settings
from searchengine.errors import InputError
from searchengine.indexing import IndexingService, get_statistics

from cli.context import open_store, require_sites


@require_sites
def crawl(
    workers: Optional[int] = typer.Option(
        None, "--workers", help="Concurrent fetches per site (default from settings)."
    ),
    delay_ms: Optional[int] = typer.Option(
        None, "--delay-ms", help="Pause after each fetched page, in milliseconds."
    ),
) -> None:
    """Rebuild the index of every configured site.  Ctrl-C stops the crawl."""
    with open_store() as conn:
        indexer = IndexingService(conn, settings.sites, crawl_workers=workers, delay_ms=delay_ms)
        indexer.start_indexing()
        typer.echo(f"🕷  Crawling {len(settings.sites)} site(s) …  (Ctrl-C to stop)")
        try:
            while not indexer.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            typer.echo("\n⏹  Stopping …")
            indexer.stop_indexing()
            indexer.wait()

        stats = get_statistics(conn, settings.sites, indexing=False)
        for item in stats["detailed"]:
            line = f"  {item['status']:<8} {item['url']}  pages={item['pages']}  lemmas={item['lemmas']}"
            if item["error"]:
                line += f"  ({item['error']})"
            typer.echo(line)


@require_sites
def index_page(
    url: str = typer.Argument(..., help="Page URL inside one of the configured sites."),
) -> None:
    """Fetch a single page and replace it in the index."""
    with open_store() as conn:
        indexer = IndexingService(conn, settings.sites)
        try:
            ok = indexer.index_page(url)
        except InputError as exc:
            typer.echo(f"❌ {exc}")
            raise typer.Exit(code=1)

    if not ok:
        typer.echo(f"❌ Failed to index {url}")
        raise typer.Exit(code=1)
    typer.echo(f"✅ Indexed {url}")


def stats(
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """Show totals and per-site status of the index."""
    with open_store() as conn:
        result = get_statistics(conn, settings.sites, indexing=False)

    if as_json:
        typer.echo(json.dumps(result, ensure_ascii=False, indent=2))
        return

    total = result["total"]
    typer.echo(f"Sites: {total['sites']}  Pages: {total['pages']}  Lemmas: {total['lemmas']}")
    for item in result["detailed"]:
        typer.echo(
            f"  {item['status']:<8} {item['name']} <{item['url']}>  "
            f"pages={item['pages']}  lemmas={item['lemmas']}"
        )
        if item["error"]:
            typer.echo(f"           error: {item['error']}")
