"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from searchengine.api import app

    uvicorn searchengine.api:app --reload
"""

from searchengine.api.app import app

__all__ = ["app"]
