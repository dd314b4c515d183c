"""Centralised settings for the site search engine.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

The list of sites to crawl lives in a small YAML file (``sites.yaml`` by
default)::

    sites:
      - url: https://www.example.ru
        name: Example
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Load .env from the project root (one level up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass(frozen=True)
class SiteConfig:
    """One configured crawl root."""

    url: str
    name: str


def load_sites(path: Path) -> list[SiteConfig]:
    """Read the ``sites`` list from a YAML file.

    A missing file yields an empty list so the API can still start and
    report statistics.

    Raises:
        ValueError: If an entry has no ``url``.
    """
    if not path.exists():
        return []
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    sites: list[SiteConfig] = []
    for entry in data.get("sites") or []:
        url = (entry.get("url") or "").strip()
        if not url:
            raise ValueError(f"Site entry without url in {path}: {entry!r}")
        sites.append(SiteConfig(url=url, name=entry.get("name") or url))
    return sites


def _default_workers() -> int:
    return max(1, (os.cpu_count() or 2) // 2)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SEARCH_WORKSPACE", Path.home() / ".searchengine_data")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "search.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Sites
    # ------------------------------------------------------------------
    sites_file: Path = field(
        default_factory=lambda: Path(os.environ.get("SEARCH_SITES_FILE", "sites.yaml"))
    )
    sites: list[SiteConfig] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Fetcher
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "SEARCH_USER_AGENT", "Mozilla/5.0 (compatible; SiteSearchBot/1.0)"
        )
    )
    referrer: str = field(
        default_factory=lambda: os.environ.get("SEARCH_REFERRER", "https://www.google.com")
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_REQUEST_TIMEOUT", "20.0"))
    )

    # ------------------------------------------------------------------
    # Crawler
    # ------------------------------------------------------------------
    crawl_delay_ms: int = field(
        default_factory=lambda: int(os.environ.get("SEARCH_CRAWL_DELAY_MS", "0"))
    )
    crawl_workers: int = field(
        default_factory=lambda: int(
            os.environ.get("SEARCH_CRAWL_WORKERS", str(_default_workers()))
        )
    )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    too_frequent_ratio: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_TOO_FREQUENT_RATIO", "0.8"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("SEARCH_LOG_LEVEL", "INFO")
    )

    def __post_init__(self) -> None:
        if not self.sites:
            self.sites = load_sites(self.sites_file)

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from searchengine.config import settings
settings = Settings()
