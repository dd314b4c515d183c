"""Search endpoint.

Routes
------
GET /api/search?query=<text>&site=<url>&offset=0&limit=20
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from searchengine.errors import InputError
from searchengine.search import search as run_search

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/search")
def search(
    request: Request,
    query: str = "",
    site: Optional[str] = None,
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1),
) -> dict[str, Any]:
    """Ranked keyword search over all sites, or only *site*.

    Args:
        query: Free-text query.
        site: Exact configured url of the site to restrict to.
        offset: Number of results to skip.
        limit: Maximum number of results to return.
    """
    indexer = request.app.state.indexer
    try:
        results = run_search(
            request.app.state.db,
            query,
            site_url=site or None,
            offset=offset,
            limit=limit,
            lemma_finder=indexer.lemma_finder,
        )
    except InputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Search for %r failed", query)
        raise HTTPException(status_code=500, detail=f"Search failed: {exc}") from exc

    return {"result": True, "count": len(results), "data": [r.to_dict() for r in results]}
