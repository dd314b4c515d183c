"""Scraper package: web fetch, markup extraction and URL rules."""

from searchengine.scraper.extractor import (
    extract_content,
    extract_links,
    extract_text,
    extract_title,
)
from searchengine.scraper.fetcher import fetch_url, make_client
from searchengine.scraper.models import CleanPage, RawPage
from searchengine.scraper.urls import normalize_url, root_url, same_host, to_path

__all__ = [
    "fetch_url",
    "make_client",
    "extract_content",
    "extract_text",
    "extract_title",
    "extract_links",
    "normalize_url",
    "root_url",
    "same_host",
    "to_path",
    "RawPage",
    "CleanPage",
]
