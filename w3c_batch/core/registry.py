"""
In-memory job registry: replay buffer, observer fan-out and abort flag.

All mutation happens on the event loop thread and ``emit`` never awaits, so
the buffered order is exactly the emission order seen by every observer.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import AsyncIterator, Dict, List, Optional, Set

from .events import JobEvent, StreamEnd
from .interfaces import Observer
from .models import PageResult, ReportSummary, utcnow

logger = logging.getLogger(__name__)


class Job:
    """One validation run."""

    def __init__(self, job_id: Optional[str] = None) -> None:
        self.id: str = job_id or uuid.uuid4().hex
        self.events: List[JobEvent] = []
        self.observers: Set[Observer] = set()
        self.report: Optional[bytes] = None
        self.summary: Optional[ReportSummary] = None
        self.results: List[Optional[PageResult]] = []
        self.terminal = False
        self.created_at: datetime = utcnow()
        self.finished_at: Optional[datetime] = None
        self._abort = asyncio.Event()

    @property
    def aborted(self) -> bool:
        return self._abort.is_set()

    async def pause(self, seconds: float) -> None:
        """Sleep for *seconds*, returning early if the job is aborted."""
        if seconds <= 0 or self.aborted:
            return
        try:
            await asyncio.wait_for(self._abort.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def __repr__(self) -> str:
        return f"<Job {self.id} events={len(self.events)} terminal={self.terminal} aborted={self.aborted}>"


class QueueObserver(Observer):
    """Observer that hands events to an :class:`asyncio.Queue`."""

    name = "QueueObserver"

    def __init__(self) -> None:
        self.queue: "asyncio.Queue[JobEvent]" = asyncio.Queue()

    def notify(self, event: JobEvent) -> None:
        self.queue.put_nowait(event)


class JobRegistry:
    """Holds every job of this process, keyed by id."""

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    def create(self) -> Job:
        job = Job()
        self._jobs[job.id] = job
        logger.debug(f"Created job {job.id}")
        return job

    def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    # ---------------------------------------------- #
    # Event flow
    def emit(self, job: Job, event: JobEvent) -> None:
        """Append *event* to the buffer and forward it to live observers."""
        if job.terminal:
            logger.debug(f"Job {job.id} is terminal, dropping {event.type} event")
            return
        job.events.append(event)
        for observer in list(job.observers):
            self._deliver(job, observer, event)

    def finish(self, job: Job, event: JobEvent) -> bool:
        """Emit a terminal *event* followed by ``stream_end``.

        Returns False (and emits nothing) if the job already finished.
        """
        if job.terminal:
            return False
        self.emit(job, event)
        self.emit(job, StreamEnd())
        job.terminal = True
        job.finished_at = utcnow()
        job.observers.clear()
        logger.info(f"Job {job.id} finished with {event.type}")
        return True

    def _deliver(self, job: Job, observer: Observer, event: JobEvent) -> bool:
        try:
            observer.notify(event)
        except Exception:
            logger.exception(f"Observer {observer.name} failed on job {job.id}, detaching")
            job.observers.discard(observer)
            return False
        return True

    def attach(self, job: Job, observer: Observer) -> bool:
        """Replay the buffered events to *observer*, then keep it live.

        Observers of a terminal job only get the replay. Returns False if
        the observer failed during replay and was dropped.
        """
        for event in list(job.events):
            if not self._deliver(job, observer, event):
                return False
        if not job.terminal:
            job.observers.add(observer)
        return True

    def detach(self, job: Job, observer: Observer) -> None:
        job.observers.discard(observer)

    async def stream(self, job: Job) -> AsyncIterator[JobEvent]:
        """Iterate over replayed and live events up to ``stream_end``."""
        observer = QueueObserver()
        self.attach(job, observer)
        try:
            while True:
                event = await observer.queue.get()
                yield event
                if isinstance(event, StreamEnd):
                    break
        finally:
            self.detach(job, observer)

    # ---------------------------------------------- #
    # Lifecycle
    def abort(self, job: Job) -> bool:
        """Request cancellation. Only the first call on a live job has effect."""
        if job.aborted or job.terminal:
            return False
        job._abort.set()
        logger.info(f"Abort requested for job {job.id}")
        return True

    def reap(self, max_age: timedelta, now: Optional[datetime] = None) -> int:
        """Evict terminal jobs that finished more than *max_age* ago."""
        now = now or utcnow()
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.terminal and job.finished_at is not None and now - job.finished_at > max_age
        ]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.info(f"Reaped {len(expired)} finished job(s), {len(self._jobs)} remaining")
        return len(expired)
