"""Recursive, cancellable crawl of one site.

A crawl starts at ``<root>/`` and follows same-host links up to
:data:`MAX_DEPTH` levels deep.  Every fetched URL becomes a page; every page
that came back with a status below 400 is lemmatized and indexed.

Concurrency
-----------
Visits run on a ``ThreadPoolExecutor``.  A visit never waits for its
children: it returns the links it wants followed, and the driver loop in
:meth:`SiteCrawler.run` submits them and keeps going until no visit is
outstanding.  This is fork/join without parking pool workers, so a small
pool cannot deadlock on a deep tree, and the crawl is finished exactly when
its whole tree is.

All visits of a site share one :class:`VisitedSet`; inserting into it is
the dedup gate.  A :class:`CancelToken` is checked before each fetch, after
it, and during the politeness delay.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from searchengine.db.models import Site
from searchengine.db.pages import find_page, save_page
from searchengine.indexing.builder import apply_lemmas, remove_page
from searchengine.morphology import LemmaExtractor
from searchengine.scraper.extractor import extract_content
from searchengine.scraper.fetcher import fetch_url, make_client
from searchengine.scraper.urls import normalize_url, same_host, to_path

logger = logging.getLogger(__name__)

MAX_DEPTH = 3


# ---------------------------------------------------------------------------
# Shared state
# ---------------------------------------------------------------------------

class CancelToken:
    """Process-wide "keep crawling" flag, passed explicitly to every crawl.

    Reading :attr:`cancelled` takes no lock; a stale read costs at most one
    extra unit of work.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._callbacks: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancel callback %r failed", callback)

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Run *callback* when the token is cancelled (now, if it already is)."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def sleep(self, seconds: float) -> bool:
        """Wait up to *seconds*; return ``True`` if cancelled meanwhile."""
        if seconds <= 0:
            return self.cancelled
        return self._event.wait(seconds)


class VisitedSet:
    """Thread-safe set of normalized URLs."""

    def __init__(self) -> None:
        self._urls: set[str] = set()
        self._lock = threading.Lock()

    def add(self, url: str) -> bool:
        """Insert *url*; return ``True`` only for the first caller."""
        with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            return True

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._urls

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)


@dataclass(frozen=True)
class CrawlStep:
    url: str
    depth: int


# ---------------------------------------------------------------------------
# Site crawler
# ---------------------------------------------------------------------------

class SiteCrawler:
    """Crawls and indexes one site.

    Args:
        conn: Shared store connection.
        site: The site row being (re)built.
        root: ``scheme://host[:port]`` of the site.
        token: Cancellation token of the indexing run.
        lemma_finder: Lemmatizer used for page text.
        workers: Size of the visit pool.
        delay_ms: Politeness delay applied once per page before following
            its links.
        on_page: Called after each stored page (progress reporting).
        client: HTTP client to use; one is created and owned otherwise.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        site: Site,
        root: str,
        token: CancelToken,
        lemma_finder: LemmaExtractor,
        workers: int = 1,
        delay_ms: int = 0,
        on_page: Optional[Callable[[], None]] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.conn = conn
        self.site = site
        self.root = root
        self.token = token
        self.lemma_finder = lemma_finder
        self.workers = max(1, workers)
        self.delay_ms = delay_ms
        self.on_page = on_page
        self.visited = VisitedSet()
        self._client = client
        self._owns_client = client is None

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Crawl the whole tree; return when every visit has finished.

        Unexpected errors (store failures, bugs) propagate so the caller can
        mark the site FAILED.  Transport and per-page parsing errors only end
        their own subtree.
        """
        if self._client is None:
            self._client = make_client()
        # Closing the client aborts fetches that are blocked on the network.
        self.token.on_cancel(self._client.close)

        try:
            with ThreadPoolExecutor(
                max_workers=self.workers,
                thread_name_prefix=f"crawl-{self.site.id}",
            ) as pool:
                pending: set[Future] = {
                    pool.submit(self.visit, CrawlStep(self.root + "/", 0))
                }
                while pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        if future.cancelled():
                            continue
                        steps = future.result()
                        if self.token.cancelled:
                            continue
                        for step in steps:
                            pending.add(pool.submit(self.visit, step))
                    if self.token.cancelled:
                        for future in pending:
                            future.cancel()
        finally:
            if self._owns_client:
                self._client.close()

        logger.info(
            "Crawl of %s finished: %d url(s) visited", self.site.url, len(self.visited)
        )

    # ------------------------------------------------------------------
    # One visit
    # ------------------------------------------------------------------

    def visit(self, step: CrawlStep) -> list[CrawlStep]:
        """Fetch, store and index one URL; return the links to follow next."""
        if self.token.cancelled or step.depth >= MAX_DEPTH:
            return []
        if not self.visited.add(normalize_url(step.url)):
            return []

        path = to_path(self.root, step.url)
        if path is None:
            return []

        try:
            raw = fetch_url(step.url, client=self._client)
        except httpx.HTTPError as exc:
            if not self.token.cancelled:
                logger.debug("Fetch failed for %s: %s", step.url, exc)
            return []
        except RuntimeError:
            # httpx refuses to send on a client closed by cancellation.
            if self.token.cancelled:
                return []
            raise

        if self.token.cancelled:
            return []

        existing = find_page(self.conn, self.site.id, path)
        if existing is not None:
            remove_page(self.conn, existing)
        page = save_page(self.conn, self.site.id, path, raw.status_code, raw.html)
        if self.on_page is not None:
            self.on_page()

        if not raw.ok:
            return []

        # From here on a failure only ends this page's subtree.
        try:
            content = extract_content(raw)
        except Exception:
            logger.exception("Extraction failed for %s", step.url)
            return []

        try:
            lemma_counts = self.lemma_finder.lemma_counts(content.text)
            apply_lemmas(self.conn, self.site.id, page.id, lemma_counts)
            logger.debug("Indexed %s (%d lemmas)", step.url, len(lemma_counts))
        except Exception:
            logger.exception("Lemmatization failed for %s", step.url)

        if not raw.html.strip():
            return []

        try:
            children = self._links_to_follow(content.links, step.depth + 1)
        except Exception:
            logger.exception("Link expansion failed for %s", step.url)
            return []

        if self.token.sleep(self.delay_ms / 1000):
            return []
        return children

    def _links_to_follow(self, links: list[str], depth: int) -> list[CrawlStep]:
        if depth >= MAX_DEPTH:
            return []
        steps: list[CrawlStep] = []
        for link in links:
            href = normalize_url(link)
            if not same_host(href, self.root):
                continue
            if to_path(self.root, href) is None:
                continue
            if href in self.visited:
                continue
            steps.append(CrawlStep(href, depth))
        return steps
