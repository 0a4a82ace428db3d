import asyncio
from datetime import timedelta

import pytest

from conftest import RecordingObserver
from w3c_batch.core.events import Cancelled, Done, PageFetching, SitemapDone, StreamEnd
from w3c_batch.core.interfaces import Observer
from w3c_batch.core.models import ReportSummary
from w3c_batch.core.registry import Job


def summary() -> ReportSummary:
    return ReportSummary(
        total_pages=0,
        pages_clean=0,
        pages_with_warnings=0,
        pages_with_errors=0,
        pages_failed=0,
        total_errors=0,
        total_warnings=0,
        total_infos=0,
    )


def test_create_and_get(registry):
    job = registry.create()

    assert registry.get(job.id) is job
    assert job.id in registry
    assert len(registry) == 1
    assert registry.get("missing") is None


def test_job_ids_are_unique(registry):
    ids = {registry.create().id for _ in range(50)}
    assert len(ids) == 50


def test_emit_buffers_and_fans_out(registry):
    job = registry.create()
    first, second = RecordingObserver(), RecordingObserver()
    registry.attach(job, first)
    registry.attach(job, second)

    registry.emit(job, SitemapDone(count=1, urls=["https://example.com/"]))
    registry.emit(job, PageFetching(index=0, url="https://example.com/"))

    assert [e.type for e in job.events] == ["sitemap_done", "page_fetching"]
    assert first.types == second.types == ["sitemap_done", "page_fetching"]


def test_attach_replays_then_goes_live(registry):
    job = registry.create()
    registry.emit(job, SitemapDone(count=1, urls=["https://example.com/"]))

    observer = RecordingObserver()
    registry.attach(job, observer)
    assert observer.types == ["sitemap_done"]

    registry.emit(job, PageFetching(index=0, url="https://example.com/"))
    assert observer.types == ["sitemap_done", "page_fetching"]


def test_late_attach_gets_full_replay_only(registry):
    job = registry.create()
    registry.emit(job, SitemapDone(count=0, urls=[]))
    registry.finish(job, Done(summary=summary()))

    observer = RecordingObserver()
    registry.attach(job, observer)

    assert observer.types == ["sitemap_done", "done", "stream_end"]
    assert observer not in job.observers
    registry.emit(job, PageFetching(index=0, url="https://example.com/"))
    assert observer.types == ["sitemap_done", "done", "stream_end"]


def test_detached_observer_gets_nothing_more(registry):
    job = registry.create()
    observer = RecordingObserver()
    registry.attach(job, observer)
    registry.detach(job, observer)

    registry.emit(job, SitemapDone(count=0, urls=[]))

    assert observer.types == []
    assert len(job.events) == 1


def test_finish_appends_stream_end_once(registry):
    job = registry.create()

    assert registry.finish(job, Cancelled()) is True
    assert registry.finish(job, Done(summary=summary())) is False

    assert [e.type for e in job.events] == ["cancelled", "stream_end"]
    assert job.terminal
    assert job.finished_at is not None


def test_emit_after_terminal_is_dropped(registry):
    job = registry.create()
    registry.finish(job, Cancelled())

    registry.emit(job, PageFetching(index=0, url="https://example.com/"))

    assert isinstance(job.events[-1], StreamEnd)
    assert len(job.events) == 2


def test_failing_observer_is_detached(registry, caplog):
    class Exploding(Observer):
        name = "Exploding"

        def notify(self, event):
            raise RuntimeError("socket closed")

    job = registry.create()
    bad, good = Exploding(), RecordingObserver()
    registry.attach(job, bad)
    registry.attach(job, good)

    registry.emit(job, SitemapDone(count=0, urls=[]))
    registry.emit(job, PageFetching(index=0, url="https://example.com/"))

    assert bad not in job.observers
    assert good.types == ["sitemap_done", "page_fetching"]
    assert "Exploding failed" in caplog.text


def test_observer_failing_during_replay_is_not_attached(registry, caplog):
    class ExplodingOnReplay(Observer):
        name = "ExplodingOnReplay"

        def __init__(self):
            self.calls = 0

        def notify(self, event):
            self.calls += 1
            raise RuntimeError("socket closed")

    job = registry.create()
    registry.emit(job, SitemapDone(count=1, urls=["https://example.com/"]))
    registry.emit(job, PageFetching(index=0, url="https://example.com/"))
    bad = ExplodingOnReplay()

    assert registry.attach(job, bad) is False

    assert bad.calls == 1
    assert bad not in job.observers
    assert caplog.text.count("ExplodingOnReplay failed") == 1

    registry.emit(job, Cancelled())
    assert bad.calls == 1


def test_abort_is_idempotent(registry):
    job = registry.create()

    assert registry.abort(job) is True
    assert registry.abort(job) is False
    assert job.aborted
    # abort emits nothing by itself
    assert job.events == []


def test_abort_after_finish_is_ignored(registry):
    job = registry.create()
    registry.finish(job, Done(summary=summary()))

    assert registry.abort(job) is False
    assert not job.aborted


@pytest.mark.asyncio
async def test_stream_yields_replay_and_live_events(registry):
    job = registry.create()
    registry.emit(job, SitemapDone(count=1, urls=["https://example.com/"]))

    async def produce():
        await asyncio.sleep(0.01)
        registry.emit(job, PageFetching(index=0, url="https://example.com/"))
        registry.finish(job, Cancelled())

    producer = asyncio.create_task(produce())
    received = [event.type async for event in registry.stream(job)]
    await producer

    assert received == ["sitemap_done", "page_fetching", "cancelled", "stream_end"]
    assert job.observers == set()


@pytest.mark.asyncio
async def test_stream_of_finished_job_replays_and_ends(registry):
    job = registry.create()
    registry.finish(job, Cancelled())

    received = [event.type async for event in registry.stream(job)]

    assert received == ["cancelled", "stream_end"]


@pytest.mark.asyncio
async def test_pause_returns_early_on_abort(registry):
    job = registry.create()
    loop = asyncio.get_running_loop()
    loop.call_later(0.01, registry.abort, job)

    await asyncio.wait_for(job.pause(10), timeout=2)

    assert job.aborted


@pytest.mark.asyncio
async def test_pause_waits_full_delay():
    job = Job()
    loop = asyncio.get_running_loop()
    started = loop.time()

    await job.pause(0.05)

    assert loop.time() - started >= 0.04


def test_reap_evicts_only_expired_terminal_jobs(registry):
    finished = registry.create()
    running = registry.create()
    registry.finish(finished, Done(summary=summary()))

    later = finished.finished_at + timedelta(hours=2)
    assert registry.reap(timedelta(hours=1), now=later) == 1

    assert finished.id not in registry
    assert running.id in registry


def test_reap_keeps_recent_jobs(registry):
    job = registry.create()
    registry.finish(job, Cancelled())

    assert registry.reap(timedelta(hours=1)) == 0
    assert job.id in registry
