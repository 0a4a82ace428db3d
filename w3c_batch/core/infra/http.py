"""
http.py – Shared aiohttp session for sitemap downloads, page fetches and
          validator calls.

Each call is one attempt. Transport errors and HTTP statuses >= 400 reach
the caller; the pipeline owns the only fallback (markup submission).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import aiohttp

logger = logging.getLogger(__name__)


class HttpClient:
    """
    One lazily opened *aiohttp.ClientSession* plus:

    * headers sent with every request (User-Agent), overridable per call
    * a default total timeout; callers pass ``timeout=`` to override it
    * ``async with`` support that closes the session it opened
    """

    def __init__(
        self,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._borrowed = session
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers: Dict[str, str] = dict(default_headers or {})

    async def __aenter__(self) -> "HttpClient":
        await self.session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def session(self) -> aiohttp.ClientSession:
        """The borrowed session if one was given, else our own."""
        if self._borrowed is not None:
            return self._borrowed
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        # a borrowed session belongs to whoever passed it in
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def set_default_header(self, key: str, value: str) -> None:
        self._headers[key] = value

    async def _send(self, method: str, url: str, **kwargs) -> aiohttp.ClientResponse:
        session = await self.session()
        kwargs["headers"] = {**self._headers, **(kwargs.get("headers") or {})}
        try:
            resp = await session.request(method, url, **kwargs)
        except aiohttp.ClientError as e:
            logger.debug(f"{method} {url} failed: {e}")
            raise
        if resp.status >= 400:
            logger.debug(f"{method} {url} -> HTTP {resp.status}")
            resp.release()
            resp.raise_for_status()
        return resp

    async def get_text(self, url: str, **kwargs) -> str:
        async with await self._send("GET", url, **kwargs) as resp:
            return await resp.text()

    async def get_bytes(self, url: str, **kwargs) -> bytes:
        async with await self._send("GET", url, **kwargs) as resp:
            return await resp.read()

    async def get_json(self, url: str, **kwargs) -> Any:
        # the validator answers JSON with varying content types
        async with await self._send("GET", url, **kwargs) as resp:
            return await resp.json(content_type=None)

    async def post_json(self, url: str, data: Any, *, json: bool = True, **kwargs) -> Any:
        """POST *data* (as JSON, or as a raw body when ``json=False``) and decode a JSON reply."""
        kwargs["json" if json else "data"] = data
        async with await self._send("POST", url, **kwargs) as resp:
            return await resp.json(content_type=None)
