"""
HTTP front end: submit jobs, stream their events as Server-Sent Events,
download reports and abort running jobs.
"""

import asyncio
import json
import logging
import signal
from contextlib import aclosing
from datetime import timedelta
from typing import Optional

from aiohttp import web
from pydantic import ValidationError

from .config import Settings
from .core.infra.http import HttpClient
from .core.infra.scheduler import Scheduler
from .core.interfaces import PageChecker, ReportRenderer, SitemapFetcher
from .core.models import ValidationParams
from .core.pipeline import ValidationPipeline
from .core.registry import Job, JobRegistry
from .core.sitemap import HttpSitemapFetcher
from .plugins.w3c.checker import W3CChecker
from .sinks.html_report import HtmlReportRenderer

logger = logging.getLogger(__name__)

SETTINGS_KEY = web.AppKey("settings", Settings)
REGISTRY_KEY = web.AppKey("registry", JobRegistry)
PIPELINE_KEY = web.AppKey("pipeline", ValidationPipeline)
TASKS_KEY = web.AppKey("tasks", set)
SCHEDULER_KEY = web.AppKey("scheduler", Scheduler)

REAP_JOB_ID = "reap_jobs"


def _json_error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _get_job(request: web.Request) -> Job:
    job = request.app[REGISTRY_KEY].get(request.match_info["job_id"])
    if job is None:
        raise web.HTTPNotFound(text="Job not found")
    return job


async def submit_job(request: web.Request) -> web.Response:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _json_error(400, "Invalid JSON")
    if not isinstance(payload, dict):
        return _json_error(400, "Expected a JSON object")

    settings = request.app[SETTINGS_KEY]
    try:
        params = ValidationParams.model_validate({**settings.submission_defaults(), **payload})
    except ValidationError as e:
        return _json_error(400, f"Invalid parameters: {e.errors(include_url=False)}")

    registry = request.app[REGISTRY_KEY]
    job = registry.create()
    task = asyncio.create_task(request.app[PIPELINE_KEY].run(job, params), name=f"job-{job.id}")
    tasks = request.app[TASKS_KEY]
    tasks.add(task)
    task.add_done_callback(tasks.discard)

    logger.info(f"Accepted job {job.id}")
    return web.json_response({"jobId": job.id})


async def stream_job(request: web.Request) -> web.StreamResponse:
    job = _get_job(request)
    resp = web.StreamResponse(headers={
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
    })
    await resp.prepare(request)

    registry = request.app[REGISTRY_KEY]
    try:
        async with aclosing(registry.stream(job)) as events:
            async for event in events:
                await resp.write(f"data: {event.to_wire()}\n\n".encode("utf-8"))
    except ConnectionResetError:
        logger.debug(f"Stream client for job {job.id} disconnected")
        return resp

    await resp.write_eof()
    return resp


async def get_report(request: web.Request) -> web.Response:
    job = _get_job(request)
    if job.report is None:
        raise web.HTTPNotFound(text="Report not ready")
    return web.Response(
        body=job.report,
        content_type="text/html",
        charset="utf-8",
        headers={"Content-Disposition": 'attachment; filename="w3c-report.html"'},
    )


async def abort_job(request: web.Request) -> web.Response:
    job = _get_job(request)
    aborted = request.app[REGISTRY_KEY].abort(job)
    return web.json_response({"ok": True, "aborted": aborted})


async def job_status(request: web.Request) -> web.Response:
    job = _get_job(request)
    return web.json_response({
        "jobId": job.id,
        "terminal": job.terminal,
        "aborted": job.aborted,
        "events": len(job.events),
        "reportReady": job.report is not None,
        "summary": json.loads(job.summary.to_wire()) if job.summary else None,
    })


async def _on_startup(app: web.Application) -> None:
    settings = app[SETTINGS_KEY]
    registry = app[REGISTRY_KEY]
    ttl = timedelta(seconds=settings.job_ttl_seconds)

    async def reap_jobs() -> None:
        registry.reap(ttl)

    scheduler = app[SCHEDULER_KEY]
    await scheduler.start()
    scheduler.add_interval_job(reap_jobs, seconds=settings.reap_interval_seconds, job_id=REAP_JOB_ID)


async def _on_cleanup(app: web.Application) -> None:
    await app[SCHEDULER_KEY].stop()

    tasks = list(app[TASKS_KEY])
    if tasks:
        logger.info(f"Cancelling {len(tasks)} running job(s)...")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def create_app(
    settings: Optional[Settings] = None,
    *,
    checker: Optional[PageChecker] = None,
    fetcher: Optional[SitemapFetcher] = None,
    renderer: Optional[ReportRenderer] = None,
    registry: Optional[JobRegistry] = None,
) -> web.Application:
    """Build the web application. Collaborators default to the HTTP implementations."""
    settings = settings or Settings()
    app = web.Application()

    http: Optional[HttpClient] = None
    if checker is None or fetcher is None:
        http = HttpClient(
            timeout=settings.fetch_timeout,
            default_headers={"User-Agent": settings.user_agent},
        )
    if checker is None:
        checker = W3CChecker(
            http,
            validator_url=settings.validator_url,
            user_agent=settings.user_agent,
            fetch_timeout=settings.fetch_timeout,
            validate_timeout=settings.validate_timeout,
        )
    if fetcher is None:
        fetcher = HttpSitemapFetcher(http)

    registry = registry or JobRegistry()
    app[SETTINGS_KEY] = settings
    app[REGISTRY_KEY] = registry
    app[PIPELINE_KEY] = ValidationPipeline(
        registry,
        checker,
        fetcher,
        renderer or HtmlReportRenderer(),
        max_depth=settings.max_sitemap_depth,
    )
    app[TASKS_KEY] = set()
    app[SCHEDULER_KEY] = Scheduler()

    app.router.add_post("/api/validate", submit_job)
    app.router.add_get("/api/stream/{job_id}", stream_job)
    app.router.add_get("/api/report/{job_id}", get_report)
    app.router.add_post("/api/abort/{job_id}", abort_job)
    app.router.add_get("/api/jobs/{job_id}", job_status)

    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    if http is not None:
        async def _close_http(app: web.Application) -> None:
            await http.close()
        app.on_cleanup.append(_close_http)
    return app


async def serve(settings: Settings) -> None:
    """Run the server until SIGINT/SIGTERM."""
    app = create_app(settings)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.host, settings.port)

    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        asyncio.get_running_loop().add_signal_handler(sig, signal_handler)

    try:
        await site.start()
        logger.info(f"W3C batch validator listening on http://{settings.host}:{settings.port}")
        await stop_event.wait()
    finally:
        logger.info("Shutting down...")
        await runner.cleanup()
        logger.info("Shutdown complete")
