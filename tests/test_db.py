"""Database layer tests.

All tests use an in-memory SQLite database so they are:
- Fast (no disk I/O)
- Isolated (each fixture gets a fresh DB)
- Side-effect free (nothing written to ~/.searchengine_data)
"""

from __future__ import annotations

import sqlite3

import pytest

from searchengine.db.connection import LockedConnection, transaction
from searchengine.db.lemmas import (
    count_lemmas,
    delete_lemmas_by_site,
    delete_unused_lemmas,
    find_lemma,
    list_lemmas,
    release_page,
    save_lemma,
)
from searchengine.db.migrations import current_version, init_db
from searchengine.db.models import Lemma, SiteStatus
from searchengine.db.pages import (
    count_pages,
    delete_page,
    delete_pages_by_site,
    find_page,
    page_exists,
    save_page,
)
from searchengine.db.postings import (
    delete_postings_by_page,
    delete_postings_by_site,
    find_posting,
    postings_by_lemma,
    postings_by_page,
    save_posting,
)
from searchengine.db.sites import (
    create_site,
    delete_site,
    find_site_by_url,
    get_site,
    list_sites,
    update_site,
)


# ---------------------------------------------------------------------------
# connection / init
# ---------------------------------------------------------------------------

class TestConnection:
    def test_locked_connection(self, conn: sqlite3.Connection) -> None:
        assert isinstance(conn, LockedConnection)
        assert conn.lock is not None

    def test_foreign_keys_enabled(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("PRAGMA foreign_keys").fetchone()
        assert row[0] == 1

    def test_wal_mode(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("PRAGMA journal_mode").fetchone()
        # In-memory DBs always return 'memory', on-disk returns 'wal'
        assert row[0] in ("wal", "memory")

    def test_transaction_rolls_back_on_error(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(RuntimeError):
            with transaction(conn):
                conn.execute(
                    "INSERT INTO sites (url, name, status, status_time) VALUES (?, ?, ?, ?)",
                    ("http://a.com", "A", "INDEXING", 0),
                )
                raise RuntimeError("boom")
        assert list_sites(conn) == []

    def test_nested_failure_rolls_back_whole_block(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(RuntimeError):
            with transaction(conn):
                create_site(conn, "http://a.com", "A")
                with transaction(conn):
                    create_site(conn, "http://b.com", "B")
                raise RuntimeError("boom")
        assert list_sites(conn) == []
        assert conn.depth == 0  # type: ignore[attr-defined]

    def test_caught_nested_failure_keeps_outer_writes(self, conn: sqlite3.Connection) -> None:
        with transaction(conn):
            create_site(conn, "http://a.com", "A")
            with pytest.raises(sqlite3.IntegrityError):
                with transaction(conn):
                    create_site(conn, "http://b.com", "B")
                    create_site(conn, "http://a.com", "A again")
        assert [s.url for s in list_sites(conn)] == ["http://a.com"]
        assert not conn.in_transaction


class TestInitDb:
    def test_tables_exist(self, conn: sqlite3.Connection) -> None:
        tables = {
            r[0]
            for r in conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).fetchall()
        }
        assert {"sites", "pages", "lemmas", "postings", "schema_version"} <= tables

    def test_idempotent(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        init_db(conn)
        assert get_site(conn, site.id) is not None

    def test_version_starts_at_zero(self, conn: sqlite3.Connection) -> None:
        assert current_version(conn) == 0


# ---------------------------------------------------------------------------
# sites
# ---------------------------------------------------------------------------

class TestSites:
    def test_create_and_get(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        assert site.id > 0
        assert site.status is SiteStatus.INDEXING
        assert site.last_error is None
        assert get_site(conn, site.id) == site

    def test_find_by_url(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        assert find_site_by_url(conn, "http://a.com") == site
        assert find_site_by_url(conn, "http://b.com") is None

    def test_url_unique(self, conn: sqlite3.Connection) -> None:
        create_site(conn, "http://a.com", "A")
        with pytest.raises(sqlite3.IntegrityError):
            create_site(conn, "http://a.com", "A again")

    def test_update_status_and_error(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        updated = update_site(
            conn, site.id, status=SiteStatus.FAILED, last_error="Connection refused"
        )
        assert updated.status is SiteStatus.FAILED
        assert updated.last_error == "Connection refused"
        assert updated.status_time >= site.status_time

    def test_update_rejects_unknown_field(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        with pytest.raises(ValueError, match="Cannot update field"):
            update_site(conn, site.id, url="http://b.com")

    def test_update_missing_site(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(ValueError, match="Site not found"):
            update_site(conn, 999, status=SiteStatus.INDEXED)

    def test_delete_cascades(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        page = save_page(conn, site.id, "/", 200, "<p>x</p>")
        lemma = save_lemma(conn, Lemma(id=0, site_id=site.id, lemma="x", frequency=1))
        save_posting(conn, page.id, lemma.id, 1.0)

        delete_site(conn, site.id)

        assert get_site(conn, site.id) is None
        assert count_pages(conn, site.id) == 0
        assert count_lemmas(conn, site.id) == 0
        assert postings_by_lemma(conn, lemma.id) == []


# ---------------------------------------------------------------------------
# pages
# ---------------------------------------------------------------------------

class TestPages:
    def test_save_and_find(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        page = save_page(conn, site.id, "/news", 200, "<p>hi</p>")
        assert page.path == "/news"
        assert find_page(conn, site.id, "/news") == page
        assert page_exists(conn, site.id, "/news")
        assert not page_exists(conn, site.id, "/other")

    def test_save_same_path_replaces(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        save_page(conn, site.id, "/", 500, "")
        page = save_page(conn, site.id, "/", 200, "<p>ok</p>")
        assert count_pages(conn, site.id) == 1
        assert page.code == 200
        assert page.content == "<p>ok</p>"

    def test_same_path_on_two_sites(self, conn: sqlite3.Connection) -> None:
        a = create_site(conn, "http://a.com", "A")
        b = create_site(conn, "http://b.com", "B")
        save_page(conn, a.id, "/", 200, "")
        save_page(conn, b.id, "/", 200, "")
        assert count_pages(conn, a.id) == 1
        assert count_pages(conn, b.id) == 1

    def test_delete_page_drops_postings(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        page = save_page(conn, site.id, "/", 200, "")
        lemma = save_lemma(conn, Lemma(id=0, site_id=site.id, lemma="x", frequency=1))
        save_posting(conn, page.id, lemma.id, 2.0)
        delete_page(conn, page.id)
        assert postings_by_page(conn, page.id) == []


# ---------------------------------------------------------------------------
# lemmas / postings
# ---------------------------------------------------------------------------

class TestLemmasAndPostings:
    def test_list_lemmas_filter(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        for text in ("кот", "пёс", "лес"):
            save_lemma(conn, Lemma(id=0, site_id=site.id, lemma=text, frequency=1))
        found = {lemma.lemma for lemma in list_lemmas(conn, site.id, {"кот", "лес", "дом"})}
        assert found == {"кот", "лес"}
        assert list_lemmas(conn, site.id, []) == []
        assert len(list_lemmas(conn, site.id)) == 3

    def test_lemma_unique_per_site(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        save_lemma(conn, Lemma(id=0, site_id=site.id, lemma="кот", frequency=1))
        with pytest.raises(sqlite3.IntegrityError):
            save_lemma(conn, Lemma(id=0, site_id=site.id, lemma="кот", frequency=1))

    def test_save_posting_upserts(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        page = save_page(conn, site.id, "/", 200, "")
        lemma = save_lemma(conn, Lemma(id=0, site_id=site.id, lemma="кот", frequency=1))
        save_posting(conn, page.id, lemma.id, 1.0)
        posting = save_posting(conn, page.id, lemma.id, 3.0)
        assert posting.rank == 3.0
        assert len(postings_by_page(conn, page.id)) == 1
        assert find_posting(conn, page.id, lemma.id) == posting

    def test_release_and_delete_unused(self, conn: sqlite3.Connection) -> None:
        site = create_site(conn, "http://a.com", "A")
        p1 = save_page(conn, site.id, "/1", 200, "")
        p2 = save_page(conn, site.id, "/2", 200, "")
        shared = save_lemma(conn, Lemma(id=0, site_id=site.id, lemma="общий", frequency=2))
        only = save_lemma(conn, Lemma(id=0, site_id=site.id, lemma="один", frequency=1))
        save_posting(conn, p1.id, shared.id, 1.0)
        save_posting(conn, p2.id, shared.id, 1.0)
        save_posting(conn, p1.id, only.id, 1.0)

        release_page(conn, p1.id)
        dropped = delete_unused_lemmas(conn, site.id)

        assert dropped == 1
        assert find_lemma(conn, site.id, "один") is None
        assert find_lemma(conn, site.id, "общий").frequency == 1  # type: ignore[union-attr]


class TestBulkDeletes:
    def _populate(self, conn: sqlite3.Connection):
        a = create_site(conn, "http://a.com", "A")
        b = create_site(conn, "http://b.com", "B")
        for site in (a, b):
            page = save_page(conn, site.id, "/", 200, "")
            lemma = save_lemma(conn, Lemma(id=0, site_id=site.id, lemma="кот", frequency=1))
            save_posting(conn, page.id, lemma.id, 1.0)
        return a, b

    def test_delete_postings_by_page(self, conn: sqlite3.Connection) -> None:
        a, _ = self._populate(conn)
        page = find_page(conn, a.id, "/")
        delete_postings_by_page(conn, page.id)  # type: ignore[union-attr]
        assert postings_by_page(conn, page.id) == []  # type: ignore[union-attr]

    def test_delete_by_site_leaves_other_sites(self, conn: sqlite3.Connection) -> None:
        a, b = self._populate(conn)
        delete_postings_by_site(conn, a.id)
        delete_pages_by_site(conn, a.id)
        delete_lemmas_by_site(conn, a.id)

        assert count_pages(conn, a.id) == 0
        assert count_lemmas(conn, a.id) == 0
        assert get_site(conn, a.id) is not None
        assert count_pages(conn, b.id) == 1
        b_page = find_page(conn, b.id, "/")
        assert len(postings_by_page(conn, b_page.id)) == 1  # type: ignore[union-attr]
