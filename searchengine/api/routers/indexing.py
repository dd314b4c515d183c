"""Indexing control endpoints.

Routes
------
GET  /api/startIndexing          → start a full crawl of every configured site
GET  /api/stopIndexing           → cancel the running crawl
POST /api/indexPage?url=<url>    → re-index a single page synchronously
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from searchengine.errors import InputError

router = APIRouter()


@router.get("/startIndexing")
def start_indexing(request: Request) -> dict[str, Any]:
    """Start crawling all configured sites in the background."""
    if not request.app.state.indexer.start_indexing():
        raise HTTPException(status_code=409, detail="Indexing is already running")
    return {"result": True}


@router.get("/stopIndexing")
def stop_indexing(request: Request) -> dict[str, Any]:
    """Stop the running crawl; unfinished sites are marked FAILED."""
    if not request.app.state.indexer.stop_indexing():
        raise HTTPException(status_code=409, detail="Indexing is not running")
    return {"result": True}


@router.post("/indexPage")
def index_page(request: Request, url: str = "") -> dict[str, Any]:
    """Fetch *url* and replace its page in the index.

    Returns 400 for a blank url or one outside the configured sites, and 500
    when fetching or indexing failed (the site is then FAILED).
    """
    try:
        ok = request.app.state.indexer.index_page(url)
    except InputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not ok:
        raise HTTPException(status_code=500, detail=f"Failed to index page {url}")
    return {"result": True}
