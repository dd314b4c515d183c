"""Crawling and index maintenance."""

from searchengine.indexing.builder import apply_lemmas, remove_page
from searchengine.indexing.crawler import MAX_DEPTH, CancelToken, SiteCrawler, VisitedSet
from searchengine.indexing.service import STOPPED_BY_USER, IndexingService
from searchengine.indexing.statistics import get_statistics

__all__ = [
    "apply_lemmas",
    "remove_page",
    "MAX_DEPTH",
    "CancelToken",
    "SiteCrawler",
    "VisitedSet",
    "IndexingService",
    "STOPPED_BY_USER",
    "get_statistics",
]
