"""Tests for the /api endpoints.

The TestClient lifespan opens its own connection and indexer; both are
replaced with an in-memory DB and an indexer using the fake lemma finder so
each test is isolated.  HTTP fetches are mocked with ``respx``.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from searchengine.api.app import create_app
from searchengine.config import SiteConfig
from searchengine.db.pages import save_page
from searchengine.db.sites import create_site
from searchengine.indexing.builder import apply_lemmas
from searchengine.indexing.service import IndexingService

ROOT = "http://site.test"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def indexer(conn, finder) -> IndexingService:
    return IndexingService(conn, [SiteConfig(url=ROOT, name="Site")], lemma_finder=finder)


@pytest.fixture()
def client(conn, indexer, tmp_path, monkeypatch):
    """TestClient whose app state points at the in-memory fixtures."""
    monkeypatch.setattr("searchengine.config.settings.workspace_dir", tmp_path)
    app = create_app()

    with TestClient(app, raise_server_exceptions=True) as c:
        # Lifespan has run by this point; override its state.
        c.app.state.db = conn
        c.app.state.indexer = indexer
        yield c


@pytest.fixture()
def indexed(conn) -> None:
    """Ten pages: "кот" on two of them (ranks 2 and 1), "лес" on the rest."""
    site = create_site(conn, ROOT, "Site")
    pages = [{"кот": 2}, {"кот": 1}] + [{"лес": 1}] * 8
    for i, counts in enumerate(pages):
        html = f"<html><head><title>T{i}</title></head><body>{' '.join(counts)}</body></html>"
        page = save_page(conn, site.id, f"/{i}", 200, html)
        apply_lemmas(conn, site.id, page.id, counts)


# ---------------------------------------------------------------------------
# Indexing control
# ---------------------------------------------------------------------------

class TestStartStop:
    def test_start(self, client) -> None:
        client.app.state.indexer = MagicMock(start_indexing=MagicMock(return_value=True))
        resp = client.get("/api/startIndexing")
        assert resp.status_code == 200
        assert resp.json() == {"result": True}

    def test_start_conflict(self, client) -> None:
        client.app.state.indexer = MagicMock(start_indexing=MagicMock(return_value=False))
        resp = client.get("/api/startIndexing")
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Indexing is already running"

    def test_stop_when_idle(self, client) -> None:
        resp = client.get("/api/stopIndexing")
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Indexing is not running"


class TestIndexPage:
    def test_blank_url(self, client) -> None:
        resp = client.post("/api/indexPage", params={"url": ""})
        assert resp.status_code == 400

    def test_outside_configured_sites(self, client) -> None:
        resp = client.post("/api/indexPage", params={"url": "http://elsewhere.test/"})
        assert resp.status_code == 400

    @respx.mock
    def test_success(self, client) -> None:
        respx.get(f"{ROOT}/news").mock(return_value=httpx.Response(200, text="<p>кот</p>"))
        resp = client.post("/api/indexPage", params={"url": f"{ROOT}/news"})
        assert resp.status_code == 200
        assert resp.json() == {"result": True}

    @respx.mock
    def test_fetch_failure(self, client) -> None:
        respx.get(f"{ROOT}/news").mock(side_effect=httpx.ConnectError("refused"))
        resp = client.post("/api/indexPage", params={"url": f"{ROOT}/news"})
        assert resp.status_code == 500


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

class TestStatistics:
    def test_empty(self, client) -> None:
        resp = client.get("/api/statistics")
        assert resp.status_code == 200
        body = resp.json()
        assert body["result"] is True
        assert body["statistics"]["total"]["sites"] == 1
        assert body["statistics"]["total"]["indexing"] is False
        assert body["statistics"]["detailed"][0]["status"] == "FAILED"

    def test_with_data(self, client, indexed) -> None:
        body = client.get("/api/statistics").json()
        assert body["statistics"]["total"]["pages"] == 10
        assert body["statistics"]["total"]["lemmas"] == 2


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class TestSearch:
    def test_results(self, client, indexed) -> None:
        resp = client.get("/api/search", params={"query": "кот"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["result"] is True
        assert body["count"] == 2
        assert [d["uri"] for d in body["data"]] == ["/0", "/1"]
        assert body["data"][0]["relevance"] == 1.0
        assert body["data"][1]["relevance"] == 0.5
        assert body["data"][0]["site"] == ROOT

    def test_paging(self, client, indexed) -> None:
        body = client.get("/api/search", params={"query": "кот", "offset": 1, "limit": 1}).json()
        assert [d["uri"] for d in body["data"]] == ["/1"]

    def test_empty_query(self, client, indexed) -> None:
        resp = client.get("/api/search", params={"query": ""})
        assert resp.status_code == 400

    def test_unknown_site(self, client, indexed) -> None:
        resp = client.get("/api/search", params={"query": "кот", "site": "http://x.test"})
        assert resp.status_code == 400

    def test_invalid_limit(self, client, indexed) -> None:
        resp = client.get("/api/search", params={"query": "кот", "limit": 0})
        assert resp.status_code == 422
