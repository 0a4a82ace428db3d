"""
Core data models for the batch validator.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class WireModel(BaseModel):
    """Base for records that travel as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class MessageKind(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class PageStatus(str, Enum):
    CLEAN = "clean"
    WARNINGS = "warnings"
    ERRORS = "errors"
    FAILED = "failed"


class Diagnostic(WireModel):
    """A single checker message. Only ``kind`` is interpreted by the pipeline."""
    kind: MessageKind
    text: str
    extract: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    sub_type: Optional[str] = None


class PageResult(WireModel):
    """Outcome of validating one URL of the resolved list."""
    index: int
    source_url: str
    url: str
    status: PageStatus
    messages: List[Diagnostic] = Field(default_factory=list)
    duration: int = 0  # milliseconds
    error_message: Optional[str] = None

    def count(self, kind: MessageKind) -> int:
        return sum(1 for m in self.messages if m.kind == kind)


class ReportSummary(WireModel):
    total_pages: int
    pages_clean: int
    pages_with_warnings: int
    pages_with_errors: int
    pages_failed: int
    total_errors: int
    total_warnings: int
    total_infos: int
    generated_at: datetime = Field(default_factory=utcnow)
    base_url: str = ""


class ValidationParams(BaseModel):
    """Submission parameters for one validation run.

    Accepts both the camelCase names and the short names used by the
    browser client (``xml``, ``base``, ``delay``).
    """

    sitemap_xml: str = Field(
        min_length=1,
        validation_alias=AliasChoices("sitemapXml", "xml", "sitemap_xml"),
    )
    base_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("baseUrl", "base", "base_url"),
    )
    concurrency: int = Field(1, ge=1)
    inter_task_delay_ms: int = Field(
        1000,
        ge=0,
        validation_alias=AliasChoices("interTaskDelayMs", "delay", "inter_task_delay_ms"),
    )
