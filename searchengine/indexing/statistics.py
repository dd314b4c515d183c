"""Aggregate and per-site counts for the dashboard."""

from __future__ import annotations

import sqlite3
from time import time
from typing import Any

from searchengine.config import SiteConfig
from searchengine.db.lemmas import count_lemmas
from searchengine.db.models import SiteStatus
from searchengine.db.pages import count_pages
from searchengine.db.sites import list_sites


def get_statistics(
    conn: sqlite3.Connection,
    configured: list[SiteConfig],
    indexing: bool,
) -> dict[str, Any]:
    """Return ``{"total": {...}, "detailed": [...]}``.

    Before the first crawl the store has no sites; the configured ones are
    listed as FAILED with zero counts so the dashboard still shows them.
    """
    total = {"sites": len(configured), "pages": 0, "lemmas": 0, "indexing": indexing}
    detailed: list[dict[str, Any]] = []

    stored = list_sites(conn)
    for site in stored:
        pages = count_pages(conn, site.id)
        lemmas = count_lemmas(conn, site.id)
        total["pages"] += pages
        total["lemmas"] += lemmas
        detailed.append(
            {
                "url": site.url,
                "name": site.name,
                "status": site.status.value,
                "status_time": site.status_time,
                "error": site.last_error,
                "pages": pages,
                "lemmas": lemmas,
            }
        )

    if not stored:
        now = int(time())
        for cfg in configured:
            detailed.append(
                {
                    "url": cfg.url,
                    "name": cfg.name,
                    "status": SiteStatus.FAILED.value,
                    "status_time": now,
                    "error": None,
                    "pages": 0,
                    "lemmas": 0,
                }
            )

    return {"total": total, "detailed": detailed}
