"""Content extraction: turns a :class:`RawPage` into a :class:`CleanPage`.

The index covers the whole visible text of a page (menus and footers
included), so extraction is a plain BeautifulSoup text dump rather than a
readability pass.
"""

from __future__ import annotations

import re
from html import unescape
from typing import List
from urllib.parse import urljoin, urldefrag

from bs4 import BeautifulSoup

from searchengine.scraper.models import CleanPage, RawPage


_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_text(html: str) -> str:
    """Return the visible text of *html*, whitespace-collapsed.

    ``<script>`` and ``<style>`` blocks are dropped.
    """
    soup = _soup(html)
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return soup.get_text(separator=" ", strip=True)


def extract_title(html: str) -> str:
    """Return the text content of the first ``<title>`` tag, or empty string."""
    match = _TITLE_RE.search(html or "")
    if match:
        return unescape(match.group(1)).strip()
    return ""


def extract_links(html: str, base_url: str) -> List[str]:
    """Return deduplicated absolute URLs of every ``<a href>`` in *html*.

    Relative hrefs are resolved against *base_url*, fragments are stripped,
    and non-HTTP schemes (``mailto:``, ``javascript:``, ...) are dropped, as
    are hrefs ``urljoin`` cannot parse (``http://[broken``).
    """
    seen: set[str] = set()
    links: List[str] = []
    for anchor in _soup(html).find_all("a", href=True):
        href = anchor["href"].strip()
        if not href:
            continue
        try:
            absolute, _fragment = urldefrag(urljoin(base_url, href))
        except ValueError:
            continue
        if not absolute.startswith(("http://", "https://")):
            continue
        if absolute not in seen:
            seen.add(absolute)
            links.append(absolute)
    return links


def extract_content(raw: RawPage) -> CleanPage:
    """Extract text, title and links from *raw* in one go."""
    return CleanPage(
        url=raw.url,
        title=extract_title(raw.html),
        text=extract_text(raw.html),
        links=extract_links(raw.html, raw.final_url),
    )
