"""HTTP fetcher used by the crawler and single-page indexing.

HTTP error statuses (4xx/5xx) are *returned* in :class:`RawPage`, never
raised: the crawler stores error pages too.  Only transport failures
(DNS, connect, timeout, ...) raise ``httpx.HTTPError``.

Redirects are followed; the page is indexed under the URL that was asked
for and ``RawPage.final_url`` records where the chain ended.
"""

from __future__ import annotations

from typing import Optional

import httpx

from searchengine.config import settings
from searchengine.scraper.models import RawPage


def default_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.user_agent,
        "Referer": settings.referrer,
    }


def make_client() -> httpx.Client:
    """Return a client configured with the crawler's headers and timeout.

    ``httpx.Client`` is thread-safe, so one instance is shared by every
    worker of a site crawl.
    """
    return httpx.Client(
        headers=default_headers(),
        timeout=settings.request_timeout,
        follow_redirects=True,
    )


def fetch_url(url: str, client: Optional[httpx.Client] = None) -> RawPage:
    """Fetch *url* and return a :class:`RawPage`.

    Args:
        url: Absolute URL to GET.
        client: Shared client to reuse.  A throwaway one is created when
            omitted.

    Raises:
        httpx.HTTPError: On transport failures (not on HTTP error statuses).
    """
    if client is None:
        with make_client() as own:
            return fetch_url(url, client=own)

    response = client.get(url)
    return RawPage(
        url=url,
        html=response.text or "",
        status_code=response.status_code,
        final_url=str(response.url),
    )
