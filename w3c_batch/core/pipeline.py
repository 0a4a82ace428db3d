"""
Validation pipeline: sitemap resolution followed by a bounded, paced and
cancellable pass of the page checker over every resolved URL.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Tuple

from .aggregator import classify, summarize
from .errors import InvalidUrl, SitemapError
from .events import (
    Cancelled,
    Done,
    ErrorEvent,
    JobEvent,
    PageDone,
    PageFetching,
    PageValidating,
    SitemapDone,
    SitemapErrorEvent,
)
from .interfaces import PageChecker, ReportRenderer, SitemapFetcher
from .models import Diagnostic, PageResult, PageStatus, ValidationParams
from .registry import Job, JobRegistry
from .sitemap import MAX_DEPTH, SitemapResolver
from .urls import get_origin, is_loopback, resolve_url_to_base

logger = logging.getLogger(__name__)


class ValidationPipeline:
    """Runs validation jobs and reports their progress to a :class:`JobRegistry`."""

    def __init__(
        self,
        registry: JobRegistry,
        checker: PageChecker,
        fetcher: SitemapFetcher,
        renderer: Optional[ReportRenderer] = None,
        *,
        max_depth: int = MAX_DEPTH,
    ) -> None:
        self._registry = registry
        self._checker = checker
        self._fetcher = fetcher
        self._renderer = renderer
        self._max_depth = max_depth

    async def run(self, job: Job, params: ValidationParams) -> None:
        """Run *job* to completion. Always leaves the job terminal."""
        logger.info(f"Starting job {job.id}")
        try:
            await self._run(job, params)
        except asyncio.CancelledError:
            logger.info(f"Job {job.id} task cancelled")
            self._registry.finish(job, Cancelled())
            raise
        except Exception as e:
            logger.error(f"Job {job.id} failed: {e}", exc_info=True)
            self._registry.finish(job, ErrorEvent(message=str(e) or e.__class__.__name__))

    def _emit(self, job: Job, event: JobEvent) -> None:
        self._registry.emit(job, event)

    async def _run(self, job: Job, params: ValidationParams) -> None:
        resolver = SitemapResolver(
            self._fetcher,
            lambda event: self._emit(job, event),
            max_depth=self._max_depth,
            should_stop=lambda: job.aborted,
        )

        try:
            raw_urls = await resolver.resolve(params.sitemap_xml)
            if job.aborted:
                self._registry.finish(job, Cancelled())
                return
            base_url = (params.base_url or "").strip() or get_origin(raw_urls[0])
            targets = [(url, resolve_url_to_base(url, base_url)) for url in raw_urls]
        except (SitemapError, InvalidUrl) as e:
            logger.warning(f"Job {job.id}: sitemap rejected: {e}")
            self._registry.finish(job, SitemapErrorEvent(message=str(e)))
            return

        self._emit(job, SitemapDone(count=len(targets), urls=[resolved for _, resolved in targets]))
        logger.info(
            f"Job {job.id}: validating {len(targets)} pages against {base_url} "
            f"(concurrency={params.concurrency}, delay={params.inter_task_delay_ms}ms)"
        )

        results: List[Optional[PageResult]] = [None] * len(targets)
        job.results = results
        limiter = asyncio.Semaphore(params.concurrency)
        delay = params.inter_task_delay_ms / 1000.0

        await asyncio.gather(*(
            self._run_page(job, limiter, results, index, target, delay)
            for index, target in enumerate(targets)
        ))

        if job.aborted:
            done = sum(1 for r in results if r is not None)
            logger.info(f"Job {job.id} cancelled after {done}/{len(results)} pages")
            self._registry.finish(job, Cancelled())
            return

        summary = summarize(results, base_url)
        job.summary = summary
        if self._renderer is not None:
            job.report = self._renderer.render(results, summary)
        self._registry.finish(job, Done(summary=summary))

    async def _run_page(
        self,
        job: Job,
        limiter: asyncio.Semaphore,
        results: List[Optional[PageResult]],
        index: int,
        target: Tuple[str, str],
        delay: float,
    ) -> None:
        source_url, url = target
        async with limiter:
            if job.aborted:
                return

            started = time.perf_counter()
            self._emit(job, PageFetching(index=index, url=url))
            try:
                messages = await self._check_page(url)
                self._emit(job, PageValidating(index=index, url=url))
                result = PageResult(
                    index=index,
                    source_url=source_url,
                    url=url,
                    status=classify(messages),
                    messages=messages,
                    duration=_elapsed_ms(started),
                )
            except Exception as e:
                logger.warning(f"Job {job.id}: page {url} failed: {e}")
                result = PageResult(
                    index=index,
                    source_url=source_url,
                    url=url,
                    status=PageStatus.FAILED,
                    messages=[],
                    duration=_elapsed_ms(started),
                    error_message=str(e) or e.__class__.__name__,
                )

            results[index] = result
            self._emit(job, PageDone.from_result(result))

            # Pace the checker before releasing the slot
            await job.pause(delay)

    async def _check_page(self, url: str) -> List[Diagnostic]:
        # A remote checker cannot reach loopback hosts, so submit the markup
        if is_loopback(url):
            html = await self._checker.fetch_markup(url)
            return await self._checker.check_markup(html)

        try:
            return await self._checker.check_url(url)
        except Exception as e:
            logger.info(f"{self._checker.name} could not check {url} by URL ({e}), submitting markup")
            html = await self._checker.fetch_markup(url)
            return await self._checker.check_markup(html)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
