"""
Sitemap parsing and sitemap-index resolution.

Supports ``<urlset>`` and ``<sitemapindex>`` documents (any namespace) and
gzip-compressed sitemaps served as ``.xml.gz``.
"""

from __future__ import annotations

import asyncio
import gzip
import logging
import xml.etree.ElementTree as ET
import zlib
from typing import Callable, List, Literal, Optional

import aiohttp
from pydantic import BaseModel

from .errors import EmptySitemap, FetchError, MalformedXml, SitemapError
from .events import (
    JobEvent,
    SitemapIndexFetched,
    SitemapIndexFetchError,
    SitemapIndexFetching,
    SitemapIndexResolved,
    SitemapIndexResolving,
)
from .infra.http import HttpClient
from .interfaces import SitemapFetcher

logger = logging.getLogger(__name__)

MAX_DEPTH = 3

_GZIP_MAGIC = b"\x1f\x8b"


class SitemapParse(BaseModel):
    """Either page URLs (``urls``) or nested sitemap URLs (``sitemapindex``)."""
    kind: Literal["urls", "sitemapindex"]
    urls: List[str]


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _locations(root: ET.Element, entry_tag: str) -> List[str]:
    locs: List[str] = []
    for entry in root:
        if _local(entry.tag) != entry_tag:
            continue
        for child in entry:
            if _local(child.tag) == "loc" and child.text and child.text.strip():
                locs.append(child.text.strip())
                break
    return locs


def parse_sitemap(xml_text: str) -> SitemapParse:
    """Parse sitemap XML. Entries without a ``<loc>`` are dropped."""
    text = xml_text.lstrip("\ufeff").strip()
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedXml(f"Sitemap is not well-formed XML: {e}") from e

    name = _local(root.tag)
    if name == "urlset":
        return SitemapParse(kind="urls", urls=_locations(root, "url"))
    if name == "sitemapindex":
        return SitemapParse(kind="sitemapindex", urls=_locations(root, "sitemap"))

    raise MalformedXml(
        "Unrecognized XML format. Expected a sitemap <urlset> with <url> entries."
    )


class SitemapResolver:
    """Flattens a sitemap (or sitemap index tree) into page URLs.

    Progress is reported through *emit*; *should_stop* is polled before
    every nested fetch so an aborted job stops resolving early.
    """

    def __init__(
        self,
        fetcher: SitemapFetcher,
        emit: Callable[[JobEvent], None],
        *,
        max_depth: int = MAX_DEPTH,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._fetcher = fetcher
        self._emit = emit
        self._max_depth = max_depth
        self._should_stop = should_stop or (lambda: False)

    async def resolve(self, xml_text: str) -> List[str]:
        parsed = parse_sitemap(xml_text)

        if parsed.kind == "urls":
            urls = parsed.urls
        else:
            logger.info(f"Resolving sitemap index with {len(parsed.urls)} nested sitemaps")
            self._emit(SitemapIndexResolving(count=len(parsed.urls), urls=parsed.urls))
            urls = await self._resolve_children(parsed.urls, depth=1)
            self._emit(SitemapIndexResolved(total_urls=len(urls)))

        if not urls and not self._should_stop():
            raise EmptySitemap("No <url> entries found in the sitemap XML.")
        return urls

    async def _resolve_children(self, sitemap_urls: List[str], depth: int) -> List[str]:
        urls: List[str] = []
        for sitemap_url in sitemap_urls:
            if self._should_stop():
                logger.info("Sitemap resolution stopped: job aborted")
                break
            urls.extend(await self._resolve_nested(sitemap_url, depth))
        return urls

    async def _resolve_nested(self, url: str, depth: int) -> List[str]:
        if depth > self._max_depth:
            logger.warning(f"Max sitemap depth ({self._max_depth}) reached, skipping: {url}")
            return []

        self._emit(SitemapIndexFetching(url=url))
        try:
            parsed = parse_sitemap(await self._fetcher.fetch(url))
        except (FetchError, SitemapError) as e:
            logger.warning(f"Nested sitemap {url} unusable: {e}")
            self._emit(SitemapIndexFetchError(url=url, message=str(e)))
            return []

        if parsed.kind == "urls":
            urls = parsed.urls
        else:
            urls = await self._resolve_children(parsed.urls, depth + 1)

        self._emit(SitemapIndexFetched(url=url, count=len(urls)))
        return urls


class HttpSitemapFetcher(SitemapFetcher):
    """Fetches sitemaps over HTTP through the shared :class:`HttpClient`."""

    def __init__(self, http: HttpClient) -> None:
        self._http = http

    async def fetch(self, url: str) -> str:
        try:
            body = await self._http.get_bytes(url)
            if body[:2] == _GZIP_MAGIC:
                body = gzip.decompress(body)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, EOFError, zlib.error) as e:
            raise FetchError(url, str(e) or e.__class__.__name__) from e
        return body.decode("utf-8", errors="replace")
