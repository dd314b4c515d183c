"""Statistics endpoint.

Routes
------
GET /api/statistics
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from searchengine.indexing.statistics import get_statistics

router = APIRouter()


@router.get("/statistics")
def statistics(request: Request) -> dict[str, Any]:
    """Totals plus per-site status, page and lemma counts."""
    indexer = request.app.state.indexer
    stats = get_statistics(request.app.state.db, indexer.sites, indexer.is_indexing)
    return {"result": True, "statistics": stats}
