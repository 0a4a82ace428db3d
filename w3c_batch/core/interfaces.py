"""
Collaborator interfaces used by the validation pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .events import JobEvent
from .models import Diagnostic, PageResult, ReportSummary


class SitemapFetcher(ABC):
    """Retrieves nested sitemaps while resolving a sitemap index."""

    @abstractmethod
    async def fetch(self, url: str) -> str:
        """Return the sitemap text at *url*; raise ``FetchError`` on failure."""
        ...


class PageChecker(ABC):
    """HTML conformance checker.

    The pipeline decides between checking by URL and posting markup; a
    checker only has to perform the individual calls.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this checker."""
        pass

    @abstractmethod
    async def check_url(self, url: str) -> List[Diagnostic]:
        """Ask the checker to fetch and validate *url* itself."""
        ...

    @abstractmethod
    async def check_markup(self, html: str) -> List[Diagnostic]:
        """Validate markup submitted directly."""
        ...

    @abstractmethod
    async def fetch_markup(self, url: str) -> str:
        """Fetch a page body locally (loopback and fallback path)."""
        ...


class ReportRenderer(ABC):
    """Renders a finished job into a document."""

    @abstractmethod
    def render(
        self, results: Sequence[Optional[PageResult]], summary: ReportSummary
    ) -> bytes:
        pass


class Observer(ABC):
    """Live listener attached to a job.

    ``notify`` is called synchronously for every emitted event, in emission
    order, so it must not block.
    """

    name = "Observer"

    @abstractmethod
    def notify(self, event: JobEvent) -> None:
        pass
