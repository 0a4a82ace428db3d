"""Shared fakes and helpers for the test suite."""

import asyncio
from typing import Dict, Iterable, List, Optional, Union

import pytest

from w3c_batch.core.errors import FetchError
from w3c_batch.core.events import JobEvent
from w3c_batch.core.interfaces import Observer, PageChecker, SitemapFetcher
from w3c_batch.core.models import Diagnostic, MessageKind
from w3c_batch.core.registry import Job, JobRegistry


SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def urlset(*urls: str) -> str:
    entries = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset xmlns="{SITEMAP_NS}">{entries}</urlset>'


def sitemapindex(*urls: str) -> str:
    entries = "".join(f"<sitemap><loc>{u}</loc></sitemap>" for u in urls)
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex xmlns="{SITEMAP_NS}">{entries}</sitemapindex>'


def diag(kind: MessageKind, text: str = "message") -> Diagnostic:
    return Diagnostic(kind=kind, text=text)


def event_types(job: Job) -> List[str]:
    return [e.type for e in job.events]


def page_events(job: Job, index: int) -> List[str]:
    return [e.type for e in job.events if e.type.startswith("page_") and e.index == index]


Outcome = Union[List[Diagnostic], Exception]


class FakeChecker(PageChecker):
    """In-memory checker. Unknown URLs are clean."""

    name = "FakeChecker"

    def __init__(
        self,
        results: Optional[Dict[str, Outcome]] = None,
        *,
        markup_messages: Optional[List[Diagnostic]] = None,
        fetch_failures: Optional[Dict[str, Exception]] = None,
        gates: Optional[Dict[str, asyncio.Event]] = None,
        latency: Optional[Dict[str, float]] = None,
    ):
        self.results = results or {}
        self.markup_messages = markup_messages or []
        self.fetch_failures = fetch_failures or {}
        self.gates = gates or {}
        self.latency = latency or {}
        self.calls: List[tuple] = []

    async def check_url(self, url: str) -> List[Diagnostic]:
        self.calls.append(("check_url", url))
        if url in self.gates:
            await self.gates[url].wait()
        if url in self.latency:
            await asyncio.sleep(self.latency[url])
        outcome = self.results.get(url, [])
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)

    async def check_markup(self, html: str) -> List[Diagnostic]:
        self.calls.append(("check_markup", html))
        return list(self.markup_messages)

    async def fetch_markup(self, url: str) -> str:
        self.calls.append(("fetch_markup", url))
        if url in self.fetch_failures:
            raise self.fetch_failures[url]
        return f"<!DOCTYPE html><title>{url}</title>"


class FakeFetcher(SitemapFetcher):
    def __init__(self, documents: Optional[Dict[str, str]] = None):
        self.documents = documents or {}
        self.fetched: List[str] = []

    async def fetch(self, url: str) -> str:
        self.fetched.append(url)
        if url not in self.documents:
            raise FetchError(url, "404 Not Found")
        return self.documents[url]


class RecordingObserver(Observer):
    name = "RecordingObserver"

    def __init__(self):
        self.events: List[JobEvent] = []

    def notify(self, event: JobEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> List[str]:
        return [e.type for e in self.events]


class CallbackObserver(Observer):
    """Runs *callback* for every event; used to act at a precise point in a run."""

    name = "CallbackObserver"

    def __init__(self, callback):
        self.callback = callback

    def notify(self, event: JobEvent) -> None:
        self.callback(event)


class CountingRenderer:
    def __init__(self):
        self.calls = 0

    def render(self, results, summary) -> bytes:
        self.calls += 1
        return b"<html>report</html>"


@pytest.fixture
def registry() -> JobRegistry:
    return JobRegistry()


@pytest.fixture
def checker() -> FakeChecker:
    return FakeChecker()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


def urls(count: int, host: str = "https://example.com") -> Iterable[str]:
    return [f"{host}/page-{i}" for i in range(count)]
