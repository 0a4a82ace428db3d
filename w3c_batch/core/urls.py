"""
URL helpers: base rewriting, origin extraction and loopback detection.
"""

from __future__ import annotations

import ipaddress
from urllib.parse import SplitResult, urlsplit, urlunsplit

from .errors import InvalidUrl


def _split(url: str) -> SplitResult:
    try:
        parts = urlsplit(url.strip())
        parts.port  # raises ValueError on a bad port
    except (ValueError, AttributeError) as e:
        raise InvalidUrl(f"Invalid URL: {url!r} ({e})") from e
    if not parts.scheme or not parts.hostname:
        raise InvalidUrl(f"Invalid URL: {url!r}")
    return parts


def _host_port(parts: SplitResult) -> str:
    # netloc without any user:password@ prefix
    return parts.netloc.rpartition("@")[2]


def resolve_url_to_base(url: str, base_url: str) -> str:
    """Return *url* moved onto the scheme, host and port of *base_url*.

    Path, query and fragment of *url* are preserved, so a sitemap that lists
    production URLs can be checked against a staging or local deployment.
    """
    loc = _split(url)
    base = _split(base_url)
    return urlunsplit(
        (base.scheme, _host_port(base), loc.path, loc.query, loc.fragment)
    )


def get_origin(url: str) -> str:
    parts = _split(url)
    return f"{parts.scheme}://{_host_port(parts)}"


def is_loopback(url: str) -> bool:
    """True when *url* points at the current machine."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return "localhost" in url or "127.0.0.1" in url
    if not host:
        return False
    if host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False
