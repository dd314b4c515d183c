"""URL helpers shared by the crawler and single-page indexing.

Three notions are used throughout:

* the *root* of a site: ``scheme://host[:port]`` of its configured url;
* a *normalized* url: ``scheme://host[:port]path`` without query, fragment
  or trailing slashes.  It is the key of the crawl's visited set;
* the *path* of a page: the url with the root removed, ``"/"`` for the root
  itself.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

_ROOT_RE = re.compile(r"^(https?://[^/?#]+)")


def _scheme_host_port(url: str) -> Optional[str]:
    try:
        parts = urlsplit(url)
        host = parts.hostname
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme or not host:
        return None
    netloc = host if port is None else f"{host}:{port}"
    return f"{parts.scheme}://{netloc}"


def normalize_url(url: str) -> str:
    """Return ``scheme://host[:port]path`` with trailing slashes stripped.

    Malformed input is returned unchanged.  Normalizing twice is a no-op.
    """
    prefix = _scheme_host_port(url)
    if prefix is None:
        return url
    return (prefix + urlsplit(url).path).rstrip("/")


def root_url(url: str) -> str:
    """Return the ``scheme://host[:port]`` part of a configured site url."""
    prefix = _scheme_host_port(url)
    if prefix is not None:
        return prefix
    match = _ROOT_RE.match(url)
    return match.group(1) if match else url


def same_host(url: str, root: str) -> bool:
    try:
        return urlsplit(url).hostname == urlsplit(root).hostname
    except ValueError:
        return False


def to_path(root: str, url: str) -> Optional[str]:
    """Return the site-relative path of *url*, or ``None`` if it is external.

    >>> to_path("http://a.com", "http://a.com/")
    '/'
    >>> to_path("http://a.com", "http://a.com/news/")
    '/news'
    """
    if not url.startswith(root):
        return None
    rest = url[len(root):]
    if rest and rest[0] not in "/?":
        # "http://a.com.evil.org" also starts with "http://a.com"
        return None
    return rest.rstrip("/") or "/"
