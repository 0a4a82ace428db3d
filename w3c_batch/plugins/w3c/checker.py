"""
W3C Nu HTML Checker client.

Talks to the validator's JSON API (``out=json``) either by letting the
validator fetch a document itself (``doc=``) or by posting markup.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from w3c_batch.core.infra.http import HttpClient
from w3c_batch.core.interfaces import PageChecker
from w3c_batch.core.models import Diagnostic, MessageKind


logger = logging.getLogger(__name__)

DEFAULT_VALIDATOR_URL = "https://validator.w3.org/nu/?out=json"
DEFAULT_USER_AGENT = "w3c_batch/1.0 (automated validator)"


def _normalize_kind(msg_type: Optional[str], sub_type: Optional[str]) -> MessageKind:
    if msg_type == "error":
        return MessageKind.ERROR
    if msg_type == "info" and sub_type == "warning":
        return MessageKind.WARNING
    return MessageKind.INFO


def parse_messages(payload: Dict[str, Any]) -> List[Diagnostic]:
    """Map a Nu validator JSON response onto :class:`Diagnostic` records."""
    if not isinstance(payload, dict) or not isinstance(payload.get("messages"), list):
        raise ValueError("Unexpected validator response: no 'messages' list")

    out: List[Diagnostic] = []
    for msg in payload["messages"]:
        sub_type = msg.get("subType")
        out.append(
            Diagnostic(
                kind=_normalize_kind(msg.get("type"), sub_type),
                text=msg.get("message", ""),
                extract=msg.get("extract"),
                line=msg.get("firstLine", msg.get("lastLine")),
                column=msg.get("firstColumn"),
                sub_type=sub_type,
            )
        )
    return out


class W3CChecker(PageChecker):
    """Checks pages against a Nu HTML Checker instance."""

    name = "W3CChecker"

    def __init__(
        self,
        http: Optional[HttpClient] = None,
        *,
        validator_url: str = DEFAULT_VALIDATOR_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        fetch_timeout: float = 30.0,
        validate_timeout: float = 60.0,
    ) -> None:
        self._http = http or HttpClient(timeout=fetch_timeout)
        self._http.set_default_header("User-Agent", user_agent)
        self._validator_url = validator_url
        self._fetch_timeout = aiohttp.ClientTimeout(total=fetch_timeout)
        self._validate_timeout = aiohttp.ClientTimeout(total=validate_timeout)

    async def check_url(self, url: str) -> List[Diagnostic]:
        sep = "&" if "?" in self._validator_url else "?"
        req_url = f"{self._validator_url}{sep}doc={quote(url, safe='')}"
        logger.debug(f"Checking {url} by URL")
        payload = await self._http.get_json(req_url, timeout=self._validate_timeout)
        return parse_messages(payload)

    async def check_markup(self, html: str) -> List[Diagnostic]:
        logger.debug(f"Submitting {len(html)} bytes of markup")
        payload = await self._http.post_json(
            self._validator_url,
            html.encode("utf-8"),
            json=False,
            headers={"Content-Type": "text/html; charset=utf-8"},
            timeout=self._validate_timeout,
        )
        return parse_messages(payload)

    async def fetch_markup(self, url: str) -> str:
        return await self._http.get_text(url, timeout=self._fetch_timeout)
