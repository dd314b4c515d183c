"""Ranked search over the lemma index."""

from searchengine.search.engine import SearchResult, search
from searchengine.search.snippets import highlight, make_snippet

__all__ = ["SearchResult", "search", "highlight", "make_snippet"]
