"""
Reduction of per-page results into a report summary.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from .models import Diagnostic, MessageKind, PageResult, PageStatus, ReportSummary, utcnow


def classify(messages: List[Diagnostic]) -> PageStatus:
    kinds = {m.kind for m in messages}
    if MessageKind.ERROR in kinds:
        return PageStatus.ERRORS
    if MessageKind.WARNING in kinds:
        return PageStatus.WARNINGS
    return PageStatus.CLEAN


def summarize(
    results: Sequence[Optional[PageResult]],
    base_url: str,
    generated_at: Optional[datetime] = None,
) -> ReportSummary:
    """Build the summary for a finished job. Unset slots are skipped."""
    pages = [r for r in results if r is not None]

    def pages_with(status: PageStatus) -> int:
        return sum(1 for r in pages if r.status == status)

    def messages_of(kind: MessageKind) -> int:
        return sum(r.count(kind) for r in pages)

    return ReportSummary(
        total_pages=len(pages),
        pages_clean=pages_with(PageStatus.CLEAN),
        pages_with_warnings=pages_with(PageStatus.WARNINGS),
        pages_with_errors=pages_with(PageStatus.ERRORS),
        pages_failed=pages_with(PageStatus.FAILED),
        total_errors=messages_of(MessageKind.ERROR),
        total_warnings=messages_of(MessageKind.WARNING),
        total_infos=messages_of(MessageKind.INFO),
        generated_at=generated_at or utcnow(),
        base_url=base_url,
    )
