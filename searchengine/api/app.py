"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging, opens a single SQLite connection
(shared across all requests via ``request.app.state.db``), initialises the
schema and creates the :class:`IndexingService` (``app.state.indexer``) for
the configured sites.  On shutdown a running crawl is stopped and the
connection closed.

Routers
-------
All endpoint groups are mounted under ``/api``:

    /api/startIndexing, /api/stopIndexing, /api/indexPage
    /api/statistics
    /api/search
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from searchengine.config import settings
from searchengine.db import get_connection, init_db
from searchengine.indexing import IndexingService
from searchengine.logs import setup_logging

from searchengine.api.routers import indexing as indexing_router
from searchengine.api.routers import search as search_router
from searchengine.api.routers import statistics as statistics_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB and the indexer on startup; stop both on shutdown."""
    setup_logging(settings.log_level)
    settings.ensure_workspace()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    app.state.indexer = IndexingService(conn, settings.sites)
    try:
        yield
    finally:
        app.state.indexer.shutdown()
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Site Search API",
        description=(
            "REST interface for the site search engine. Starts and stops "
            "crawling of the configured sites, re-indexes single pages, "
            "reports index statistics and answers ranked keyword queries."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(indexing_router.router, prefix="/api", tags=["indexing"])
    app.include_router(statistics_router.router, prefix="/api", tags=["statistics"])
    app.include_router(search_router.router, prefix="/api", tags=["search"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn searchengine.api.app:app --reload
app = create_app()
