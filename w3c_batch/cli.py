"""
Command line entry point.

Usage:
    w3c-batch check --sitemap https://example.com/sitemap.xml [options]
    w3c-batch serve [--host HOST] [--port PORT]
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .config import Settings, load_settings, setup_logging
from .core.errors import FetchError, InvalidUrl, MalformedXml
from .core.infra.http import HttpClient
from .core.models import ValidationParams
from .core.pipeline import ValidationPipeline
from .core.registry import JobRegistry
from .core.sitemap import HttpSitemapFetcher, parse_sitemap
from .core.urls import get_origin
from .plugins.w3c.checker import W3CChecker
from .server import serve
from .sinks.console import ConsoleSink, print_page_details, print_summary, print_unique_issues
from .sinks.html_report import HtmlReportRenderer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="w3c-batch",
        description="Batch validate all pages in a sitemap against the W3C Nu HTML validator",
    )
    parser.add_argument("--config", help="Path to a YAML settings file (default: config.yaml)")
    # --config is also accepted after the subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=argparse.SUPPRESS, help=argparse.SUPPRESS)
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", parents=[common], help="Validate every page of a sitemap and write a report")
    check.add_argument("--sitemap", required=True, help="URL of the sitemap.xml to crawl")
    check.add_argument("--base", help="Override the base URL for all pages (default: origin of --sitemap)")
    check.add_argument("--output", default="report.html", help="Path to write the HTML report (default: report.html)")
    check.add_argument("--delay", type=int, help="Delay in ms between requests; W3C recommends >= 1000")
    check.add_argument("--concurrency", type=int, help="Pages validated at once (default: 1)")
    check.add_argument("--unique", action="store_true", help="Show unique issues summary after validation")

    srv = sub.add_parser("serve", parents=[common], help="Run the HTTP server")
    srv.add_argument("--host", help="Interface to bind")
    srv.add_argument("--port", type=int, help="Port to listen on")
    return parser


async def run_check(args: argparse.Namespace, settings: Settings) -> int:
    """Validate a sitemap from the terminal. Returns the process exit code."""
    try:
        base_url = args.base or get_origin(args.sitemap)
    except InvalidUrl as e:
        print(f"  {e}", file=sys.stderr)
        return 1

    delay = settings.delay_ms if args.delay is None else max(0, args.delay)
    concurrency = settings.concurrency if args.concurrency is None else max(1, args.concurrency)

    print()
    print(f"  Sitemap:     {args.sitemap}")
    print(f"  Base URL:    {base_url}")
    print(f"  Delay:       {delay}ms")
    print(f"  Output:      {args.output}")
    print()

    async with HttpClient(
        timeout=settings.fetch_timeout,
        default_headers={"User-Agent": settings.user_agent},
    ) as http:
        fetcher = HttpSitemapFetcher(http)
        checker = W3CChecker(
            http,
            validator_url=settings.validator_url,
            user_agent=settings.user_agent,
            fetch_timeout=settings.fetch_timeout,
            validate_timeout=settings.validate_timeout,
        )

        try:
            sitemap_xml = await fetcher.fetch(args.sitemap)
        except FetchError as e:
            print(f"  Failed to fetch sitemap: {e.reason}", file=sys.stderr)
            return 1

        try:
            empty = not parse_sitemap(sitemap_xml).urls
        except MalformedXml:
            empty = False  # reported through the job below
        if empty:
            print("  No URLs found in sitemap. Exiting.")
            return 0

        registry = JobRegistry()
        job = registry.create()
        registry.attach(job, ConsoleSink())

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, registry.abort, job)

        pipeline = ValidationPipeline(
            registry, checker, fetcher, HtmlReportRenderer(), max_depth=settings.max_sitemap_depth
        )
        params = ValidationParams(
            sitemap_xml=sitemap_xml,
            base_url=base_url,
            concurrency=concurrency,
            inter_task_delay_ms=delay,
        )
        try:
            await pipeline.run(job, params)
        finally:
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)

    if job.summary is None:
        # sitemap error, cancellation or fatal error; already reported
        return 1

    print_page_details(job.results)
    if args.unique:
        print_unique_issues(job.results)

    if job.report is not None:
        Path(args.output).write_bytes(job.report)
    print_summary(job.summary, args.output)

    if job.summary.pages_with_errors > 0 or job.summary.pages_failed > 0:
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    setup_logging(settings.log_level if args.command == "serve" else "WARNING")

    if args.command == "serve":
        overrides = {k: v for k, v in (("host", args.host), ("port", args.port)) if v is not None}
        settings = settings.model_copy(update=overrides)
        asyncio.run(serve(settings))
        return 0

    return asyncio.run(run_check(args, settings))


if __name__ == "__main__":
    sys.exit(main())
