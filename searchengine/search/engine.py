"""Ranked keyword search over the lemma index.

For each site in scope:

1. keep the query lemmas the site knows, minus those present on too large a
   share of its pages (``too_frequent_ratio``);
2. intersect their page sets, rarest lemma first, stopping once empty;
3. score each surviving page by the sum of its posting ranks and divide by
   the best score *of that site*.

Results of all sites are then merged, sorted by that per-site relevance and
paginated.  Relevance is therefore only comparable between pages of the same
site; sites are not re-normalised against each other.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from dataclasses import asdict, dataclass
from typing import Any, Optional

from searchengine.config import settings
from searchengine.db.lemmas import count_lemmas, list_lemmas
from searchengine.db.models import Lemma, Site
from searchengine.db.pages import count_pages, get_page
from searchengine.db.postings import postings_by_lemma
from searchengine.db.sites import find_site_by_url, list_sites
from searchengine.errors import InputError
from searchengine.morphology import LemmaExtractor, get_lemma_finder
from searchengine.scraper.extractor import extract_text, extract_title
from searchengine.search.snippets import make_snippet

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    site: str
    site_name: str
    uri: str
    title: str
    snippet: str
    relevance: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _resolve_scope(conn: sqlite3.Connection, site_url: Optional[str]) -> list[Site]:
    if not site_url:
        return list_sites(conn)
    site = find_site_by_url(conn, site_url)
    if site is None:
        raise InputError(f"Site not found: {site_url}")
    return [site]


def _selective_lemmas(
    conn: sqlite3.Connection,
    site: Site,
    query_lemmas: set[str],
    ratio: float,
) -> list[Lemma]:
    """Query lemmas known to *site* that are rare enough, rarest first."""
    page_count = count_pages(conn, site.id)
    if page_count == 0 or count_lemmas(conn, site.id) == 0:
        raise InputError(f"The index for site {site.url} has not been built yet")

    threshold = math.floor(page_count * ratio)
    lemmas = [
        lemma
        for lemma in list_lemmas(conn, site.id, query_lemmas)
        if lemma.frequency < threshold
    ]
    lemmas.sort(key=lambda lemma: lemma.frequency)
    return lemmas


def _score_pages(conn: sqlite3.Connection, lemmas: list[Lemma]) -> dict[int, float]:
    """Absolute relevance of every page containing all *lemmas*."""
    ranks: dict[int, dict[int, float]] = {}
    candidates: Optional[set[int]] = None
    for lemma in lemmas:
        page_ranks = {p.page_id: p.rank for p in postings_by_lemma(conn, lemma.id)}
        ranks[lemma.id] = page_ranks
        if candidates is None:
            candidates = set(page_ranks)
        else:
            candidates &= page_ranks.keys()
        if not candidates:
            return {}

    return {
        page_id: sum(ranks[lemma.id].get(page_id, 0.0) for lemma in lemmas)
        for page_id in sorted(candidates or ())
    }


def _search_site(
    conn: sqlite3.Connection,
    site: Site,
    query_lemmas: set[str],
    ratio: float,
) -> list[SearchResult]:
    lemmas = _selective_lemmas(conn, site, query_lemmas, ratio)
    if not lemmas:
        return []

    absolute = _score_pages(conn, lemmas)
    if not absolute:
        return []
    best = max(absolute.values()) or 1.0

    results: list[SearchResult] = []
    for page_id, score in absolute.items():
        page = get_page(conn, page_id)
        if page is None:
            # Removed by a concurrent re-index.
            continue
        results.append(
            SearchResult(
                site=site.url,
                site_name=site.name,
                uri=page.path,
                title=extract_title(page.content),
                snippet=make_snippet(extract_text(page.content), query_lemmas),
                relevance=score / best,
            )
        )
    return results


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def search(
    conn: sqlite3.Connection,
    query: str,
    site_url: Optional[str] = None,
    offset: int = 0,
    limit: int = 20,
    lemma_finder: Optional[LemmaExtractor] = None,
    too_frequent_ratio: Optional[float] = None,
) -> list[SearchResult]:
    """Return one page of results for *query*, best first.

    Args:
        conn: Open store connection.
        query: Free-text query.
        site_url: Restrict to the site with exactly this configured url.
        offset: Number of results to skip.
        limit: Maximum number of results to return.
        lemma_finder: Lemmatizer; the process-wide pymorphy3 one by default.
        too_frequent_ratio: Override ``settings.too_frequent_ratio``.

    Raises:
        InputError: Blank query, bad paging, unknown site, or a site in scope
            without an index.
    """
    if not query or not query.strip():
        raise InputError("Empty search query")
    if offset < 0 or limit < 1:
        raise InputError("offset must be >= 0 and limit >= 1")

    finder = lemma_finder or get_lemma_finder()
    query_lemmas = finder.lemma_set(query)
    if not query_lemmas:
        return []

    ratio = settings.too_frequent_ratio if too_frequent_ratio is None else too_frequent_ratio
    results: list[SearchResult] = []
    for site in _resolve_scope(conn, site_url):
        results.extend(_search_site(conn, site, query_lemmas, ratio))

    results.sort(key=lambda r: r.relevance, reverse=True)
    logger.debug("Query %r: %d result(s) over %d lemma(s)", query, len(results), len(query_lemmas))
    return results[offset:offset + limit]
