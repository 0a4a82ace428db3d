"""
Job event vocabulary.

Every event carries a ``type`` tag; consumers dispatch on it. The wire form
is the camelCase JSON produced by :meth:`WireModel.to_wire`.
"""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from .models import Diagnostic, PageResult, PageStatus, ReportSummary, WireModel


class JobEvent(WireModel):
    type: str


class SitemapErrorEvent(JobEvent):
    type: Literal["sitemap_error"] = "sitemap_error"
    message: str


class SitemapIndexResolving(JobEvent):
    type: Literal["sitemapindex_resolving"] = "sitemapindex_resolving"
    count: int
    urls: List[str]


class SitemapIndexFetching(JobEvent):
    type: Literal["sitemapindex_fetching"] = "sitemapindex_fetching"
    url: str


class SitemapIndexFetched(JobEvent):
    type: Literal["sitemapindex_fetched"] = "sitemapindex_fetched"
    url: str
    count: int


class SitemapIndexFetchError(JobEvent):
    type: Literal["sitemapindex_fetch_error"] = "sitemapindex_fetch_error"
    url: str
    message: str


class SitemapIndexResolved(JobEvent):
    type: Literal["sitemapindex_resolved"] = "sitemapindex_resolved"
    total_urls: int


class SitemapDone(JobEvent):
    type: Literal["sitemap_done"] = "sitemap_done"
    count: int
    urls: List[str]


class PageFetching(JobEvent):
    type: Literal["page_fetching"] = "page_fetching"
    index: int
    url: str


class PageValidating(JobEvent):
    type: Literal["page_validating"] = "page_validating"
    index: int
    url: str


class PageDone(JobEvent):
    type: Literal["page_done"] = "page_done"
    index: int
    url: str
    status: PageStatus
    messages: List[Diagnostic] = Field(default_factory=list)
    duration: int
    error_message: Optional[str] = None

    @classmethod
    def from_result(cls, result: PageResult) -> "PageDone":
        return cls(
            index=result.index,
            url=result.url,
            status=result.status,
            messages=result.messages,
            duration=result.duration,
            error_message=result.error_message,
        )


class Cancelled(JobEvent):
    type: Literal["cancelled"] = "cancelled"


class Done(JobEvent):
    type: Literal["done"] = "done"
    summary: ReportSummary


class ErrorEvent(JobEvent):
    type: Literal["error"] = "error"
    message: str


class StreamEnd(JobEvent):
    type: Literal["stream_end"] = "stream_end"


Event = Annotated[
    Union[
        SitemapErrorEvent,
        SitemapIndexResolving,
        SitemapIndexFetching,
        SitemapIndexFetched,
        SitemapIndexFetchError,
        SitemapIndexResolved,
        SitemapDone,
        PageFetching,
        PageValidating,
        PageDone,
        Cancelled,
        Done,
        ErrorEvent,
        StreamEnd,
    ],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter = TypeAdapter(Event)

# Events after which only the closing ``stream_end`` may follow.
TERMINAL_TYPES = frozenset({"sitemap_error", "cancelled", "done", "error"})


def parse_event(data: Union[str, bytes, dict]) -> JobEvent:
    """Parse a wire event (JSON text or dict) into its concrete model."""
    if isinstance(data, dict):
        return _event_adapter.validate_python(data)
    return _event_adapter.validate_json(data)
