"""Settings and the sites file."""

from __future__ import annotations

from pathlib import Path

import pytest

from searchengine.config import Settings, SiteConfig, load_sites


class TestLoadSites:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_sites(tmp_path / "nope.yaml") == []

    def test_reads_entries(self, tmp_path: Path) -> None:
        path = tmp_path / "sites.yaml"
        path.write_text(
            "sites:\n"
            "  - url: https://www.example.ru\n"
            "    name: Example\n"
            "  - url: https://news.example.org\n",
            encoding="utf-8",
        )
        assert load_sites(path) == [
            SiteConfig(url="https://www.example.ru", name="Example"),
            SiteConfig(url="https://news.example.org", name="https://news.example.org"),
        ]

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "sites.yaml"
        path.write_text("", encoding="utf-8")
        assert load_sites(path) == []

    def test_entry_without_url(self, tmp_path: Path) -> None:
        path = tmp_path / "sites.yaml"
        path.write_text("sites:\n  - name: Nameless\n", encoding="utf-8")
        with pytest.raises(ValueError, match="without url"):
            load_sites(path)


class TestSettings:
    def test_env_overrides(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("SEARCH_WORKSPACE", str(tmp_path))
        monkeypatch.setenv("SEARCH_TOO_FREQUENT_RATIO", "0.5")
        monkeypatch.setenv("SEARCH_SITES_FILE", str(tmp_path / "missing.yaml"))
        s = Settings()
        assert s.db_path == tmp_path / "search.db"
        assert s.too_frequent_ratio == 0.5
        assert s.sites == []

    def test_schema_bundled(self) -> None:
        assert Settings(sites=[SiteConfig("http://a.test", "A")]).schema_path.exists()
