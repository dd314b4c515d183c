"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch.

    ``url`` is the URL that was requested; ``final_url`` is where the
    redirect chain ended (equal to ``url`` when there was none).
    """

    url: str
    html: str
    status_code: int
    final_url: str = ""

    def __post_init__(self) -> None:
        if not self.final_url:
            self.final_url = self.url

    @property
    def ok(self) -> bool:
        return self.status_code < 400


@dataclass
class CleanPage:
    """Plain text, title and outbound links extracted from a :class:`RawPage`."""

    url: str
    title: str
    text: str
    links: List[str] = field(default_factory=list)
