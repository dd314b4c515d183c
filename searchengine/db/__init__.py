"""Database layer package.

Public re-exports so callers can write::

    from searchengine.db import get_connection, init_db
    from searchengine.db import sites, pages
"""

from searchengine.db.connection import get_connection, transaction
from searchengine.db.migrations import init_db
from searchengine.db import lemmas, pages, postings, sites

__all__ = [
    "get_connection",
    "transaction",
    "init_db",
    "sites",
    "pages",
    "lemmas",
    "postings",
]
