"""Indexing lifecycle: full crawls of every configured site, and single pages.

``IndexingService`` is the one object the API and CLI talk to:

* :meth:`start_indexing` rebuilds every configured site in the background,
  one crawl per site, all running in parallel;
* :meth:`stop_indexing` cancels the current run and marks unfinished sites
  FAILED;
* :meth:`index_page` synchronously re-indexes a single URL.

Start and stop are serialised by one lock.  Site status writes are
serialised per site, so a stop racing a crawl that is just finishing cannot
lose either update.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from searchengine.config import SiteConfig, settings
from searchengine.db.models import Site, SiteStatus
from searchengine.db.pages import find_page, save_page
from searchengine.db.sites import (
    create_site,
    delete_site,
    find_site_by_url,
    get_site,
    list_sites,
    update_site,
)
from searchengine.errors import InputError
from searchengine.indexing.builder import apply_lemmas, remove_page
from searchengine.indexing.crawler import CancelToken, SiteCrawler
from searchengine.morphology import LemmaExtractor, get_lemma_finder
from searchengine.scraper.extractor import extract_content
from searchengine.scraper.fetcher import fetch_url
from searchengine.scraper.urls import root_url, to_path

logger = logging.getLogger(__name__)

STOPPED_BY_USER = "Indexing stopped by user"
OUTSIDE_CONFIGURED_SITES = (
    "This page is outside the sites listed in the configuration file"
)


@dataclass
class IndexingRun:
    """Book-keeping for one start…finish cycle."""

    token: CancelToken
    remaining: int
    futures: list[Future] = field(default_factory=list)
    done: threading.Event = field(default_factory=threading.Event)


class IndexingService:
    def __init__(
        self,
        conn: sqlite3.Connection,
        sites: list[SiteConfig],
        lemma_finder: Optional[LemmaExtractor] = None,
        crawl_workers: Optional[int] = None,
        delay_ms: Optional[int] = None,
    ) -> None:
        self.conn = conn
        self.sites = list(sites)
        self._lemma_finder = lemma_finder
        self.crawl_workers = crawl_workers or settings.crawl_workers
        self.delay_ms = settings.crawl_delay_ms if delay_ms is None else delay_ms

        # Re-entrant: cancelling a future runs its done-callback on this thread.
        self._lock = threading.RLock()
        self._run: Optional[IndexingRun] = None
        self._site_locks: dict[int, threading.Lock] = {}
        self._site_locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def lemma_finder(self) -> LemmaExtractor:
        if self._lemma_finder is None:
            self._lemma_finder = get_lemma_finder()
        return self._lemma_finder

    @property
    def is_indexing(self) -> bool:
        run = self._run
        return run is not None and not run.token.cancelled and not run.done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current run is over; ``False`` on timeout."""
        run = self._run
        if run is None:
            return True
        return run.done.wait(timeout)

    def _site_lock(self, site_id: int) -> threading.Lock:
        with self._site_locks_guard:
            return self._site_locks.setdefault(site_id, threading.Lock())

    # ------------------------------------------------------------------
    # Full crawl
    # ------------------------------------------------------------------

    def start_indexing(self) -> bool:
        """Rebuild every configured site in the background.

        Returns ``False`` if a run is already in progress.
        """
        with self._lock:
            if self.is_indexing:
                return False

            run = IndexingRun(token=CancelToken(), remaining=len(self.sites))
            prepared = [self._prepare_site(cfg) for cfg in self.sites]
            self._run = run
            if not prepared:
                run.done.set()
                return True

            pool = ThreadPoolExecutor(max_workers=len(prepared), thread_name_prefix="site")
            for site in prepared:
                future = pool.submit(self._crawl_site, run, site)
                future.add_done_callback(lambda _f, run=run: self._site_finished(run))
                run.futures.append(future)
            pool.shutdown(wait=False)

        logger.info("Indexing started for %d site(s)", len(prepared))
        return True

    def stop_indexing(self) -> bool:
        """Cancel the current run.  Returns ``False`` if nothing is running."""
        with self._lock:
            if not self.is_indexing:
                return False
            run = self._run
            run.token.cancel()  # type: ignore[union-attr]
            for future in run.futures:  # type: ignore[union-attr]
                future.cancel()

            for site in list_sites(self.conn):
                if site.status is SiteStatus.INDEXING:
                    self._mark_stopped(site.id)

        logger.info("Indexing stopped by user")
        return True

    def shutdown(self) -> None:
        """Stop a running crawl, if any (application shutdown)."""
        if self.is_indexing:
            self.stop_indexing()

    def _prepare_site(self, cfg: SiteConfig) -> Site:
        old = find_site_by_url(self.conn, cfg.url)
        if old is not None:
            logger.warning("Deleting site %s and everything indexed for it", old.url)
            delete_site(self.conn, old.id)
        return create_site(self.conn, cfg.url, cfg.name, SiteStatus.INDEXING)

    def _crawl_site(self, run: IndexingRun, site: Site) -> None:
        logger.info("Crawling %s", site.url)
        crawler = SiteCrawler(
            self.conn,
            site,
            root_url(site.url),
            run.token,
            self.lemma_finder,
            workers=self.crawl_workers,
            delay_ms=self.delay_ms,
            on_page=lambda: self._touch_site(site.id),
        )
        error: Optional[str] = None
        try:
            crawler.run()
        except Exception as exc:
            if not run.token.cancelled:
                logger.exception("Crawl of %s failed", site.url)
            error = str(exc) or exc.__class__.__name__
        self._finish_site(site.id, run.token, error)

    def _site_finished(self, run: IndexingRun) -> None:
        with self._lock:
            run.remaining -= 1
            if run.remaining <= 0:
                run.done.set()
                logger.info("Indexing run finished")

    # ------------------------------------------------------------------
    # Site status (always under the site's lock)
    # ------------------------------------------------------------------

    def _touch_site(self, site_id: int) -> None:
        with self._site_lock(site_id):
            current = get_site(self.conn, site_id)
            if current is not None and current.status is SiteStatus.INDEXING:
                update_site(self.conn, site_id)

    def _mark_stopped(self, site_id: int) -> None:
        with self._site_lock(site_id):
            current = get_site(self.conn, site_id)
            if current is not None and current.status is SiteStatus.INDEXING:
                update_site(
                    self.conn, site_id, status=SiteStatus.FAILED, last_error=STOPPED_BY_USER
                )

    def _finish_site(self, site_id: int, token: CancelToken, error: Optional[str]) -> None:
        with self._site_lock(site_id):
            current = get_site(self.conn, site_id)
            if current is None or current.status is not SiteStatus.INDEXING:
                # Deleted by a newer run, or already marked by stop_indexing.
                return
            if token.cancelled:
                error = STOPPED_BY_USER
            status = SiteStatus.FAILED if error is not None else SiteStatus.INDEXED
            update_site(self.conn, site_id, status=status, last_error=error)
        logger.info("Site %s is %s", current.url, status.value)

    # ------------------------------------------------------------------
    # Single page
    # ------------------------------------------------------------------

    def find_config(self, url: str) -> Optional[SiteConfig]:
        """Return the configured site *url* belongs to, if any."""
        for cfg in self.sites:
            if url.startswith(cfg.url.rstrip("/")):
                return cfg
        return None

    def index_page(self, url: str) -> bool:
        """Fetch and (re)index one page without following its links.

        Returns ``False`` when fetching or indexing failed; the site is then
        marked FAILED with the error message.

        Raises:
            InputError: If *url* is blank or outside every configured site.
        """
        url = (url or "").strip()
        if not url:
            raise InputError("Parameter url is required")
        cfg = self.find_config(url)
        path = to_path(root_url(cfg.url), url) if cfg else None
        if cfg is None or path is None:
            raise InputError(OUTSIDE_CONFIGURED_SITES)

        site = self._resolve_site(cfg)
        try:
            raw = fetch_url(url)
            existing = find_page(self.conn, site.id, path)
            if existing is not None:
                remove_page(self.conn, existing)
            page = save_page(self.conn, site.id, path, raw.status_code, raw.html)
            if raw.ok:
                lemma_counts = self.lemma_finder.lemma_counts(extract_content(raw).text)
                apply_lemmas(self.conn, site.id, page.id, lemma_counts)
        except Exception as exc:
            logger.warning("Indexing %s failed: %s", url, exc)
            with self._site_lock(site.id):
                update_site(
                    self.conn,
                    site.id,
                    status=SiteStatus.FAILED,
                    last_error=str(exc) or exc.__class__.__name__,
                )
            return False

        logger.info("Indexed page %s (HTTP %d)", url, raw.status_code)
        return True

    def _resolve_site(self, cfg: SiteConfig) -> Site:
        site = find_site_by_url(self.conn, cfg.url)
        if site is not None:
            return site
        try:
            return create_site(self.conn, cfg.url, cfg.name, SiteStatus.INDEXED)
        except sqlite3.IntegrityError:
            # Created concurrently by another request.
            return find_site_by_url(self.conn, cfg.url)  # type: ignore[return-value]
