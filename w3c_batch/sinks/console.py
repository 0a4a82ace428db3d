"""
Console reporting: live progress observer plus end-of-run listings.
"""

import sys
from typing import Dict, List, Optional, Sequence, TextIO, Tuple

from w3c_batch.core.events import JobEvent
from w3c_batch.core.interfaces import Observer
from w3c_batch.core.models import Diagnostic, MessageKind, PageResult, PageStatus, ReportSummary


class Colors:
    """ANSI color codes for terminal output."""
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"
    BOLD = "\033[1m"
    END = "\033[0m"


_KIND_STYLE = {
    MessageKind.ERROR: (Colors.RED, "✗"),
    MessageKind.WARNING: (Colors.YELLOW, "⚠"),
    MessageKind.INFO: (Colors.BLUE, "ℹ"),
}

BOX_WIDTH = 52


def format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    return f"{ms / 1000:.1f}s"


def shorten(url: str, limit: int = 60) -> str:
    return url if len(url) <= limit else "..." + url[-(limit - 3):]


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class ConsoleSink(Observer):
    """Prints one line per notable job event."""

    name = "ConsoleSink"

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True):
        self._out = stream or sys.stdout
        self._color = color
        self._total = 0

    def _c(self, color: str, text: str) -> str:
        return f"{color}{text}{Colors.END}" if self._color else text

    def _print(self, line: str = "") -> None:
        print(line, file=self._out, flush=True)

    def notify(self, event: JobEvent) -> None:
        handler = getattr(self, f"_on_{event.type}", None)
        if handler is not None:
            handler(event)

    def _on_sitemapindex_resolving(self, event) -> None:
        self._print(f"  Sitemap index with {event.count} nested sitemaps")

    def _on_sitemapindex_fetched(self, event) -> None:
        self._print(self._c(Colors.GRAY, f"    {shorten(event.url)}: {event.count} URLs"))

    def _on_sitemapindex_fetch_error(self, event) -> None:
        self._print(self._c(Colors.YELLOW, f"    {shorten(event.url)}: {event.message}"))

    def _on_sitemap_error(self, event) -> None:
        self._print(self._c(Colors.RED, f"  ✗ Sitemap error: {event.message}"))

    def _on_sitemap_done(self, event) -> None:
        self._total = event.count
        self._print(self._c(Colors.GREEN, f"  ✓ Found {_plural(event.count, 'URL')} in sitemap"))
        self._print()

    def _on_page_done(self, event) -> None:
        position = f"[{event.index + 1}/{self._total}]" if self._total else f"[{event.index + 1}]"
        duration = self._c(Colors.GRAY, f" ({format_duration(event.duration)})")
        url = shorten(event.url)
        if event.status == PageStatus.FAILED:
            line = f"{self._c(Colors.RED, '✗ ' + url)} — {self._c(Colors.RED, 'failed')}"
        else:
            errors = sum(1 for m in event.messages if m.kind == MessageKind.ERROR)
            warnings = sum(1 for m in event.messages if m.kind == MessageKind.WARNING)
            if errors:
                detail = _plural(errors, "error") + (f", {_plural(warnings, 'warning')}" if warnings else "")
                line = f"{self._c(Colors.RED, '✗ ' + url)} — {self._c(Colors.RED, detail)}"
            elif warnings:
                line = f"{self._c(Colors.YELLOW, '⚠ ' + url)} — {self._c(Colors.YELLOW, _plural(warnings, 'warning'))}"
            else:
                line = self._c(Colors.GREEN, "✓ " + url)
        self._print(f"  {position} {line}{duration}")

    def _on_cancelled(self, event) -> None:
        self._print(self._c(Colors.YELLOW, "  Validation cancelled"))

    def _on_error(self, event) -> None:
        self._print(self._c(Colors.RED, f"  Fatal error: {event.message}"))


# ------------------------------------------------------------------- #
# End-of-run listings

def _message_line(msg: Diagnostic, suffix: str = "") -> str:
    color, icon = _KIND_STYLE[msg.kind]
    return f"  {color}{icon} {msg.text}{Colors.END}{suffix}"


def print_page_details(results: Sequence[Optional[PageResult]], stream: Optional[TextIO] = None) -> None:
    """List every page that is not clean, with its messages."""
    out = stream or sys.stdout
    issues = [r for r in results if r is not None and r.status != PageStatus.CLEAN]
    for result in issues:
        print(file=out)
        print(f"{Colors.BOLD}Page #{result.index + 1}: {result.url}{Colors.END}", file=out)
        if result.status == PageStatus.FAILED:
            print(f"  {Colors.RED}✗ Failed: {result.error_message}{Colors.END}", file=out)
            continue
        for msg in result.messages:
            location = ""
            if msg.line is not None:
                col = f":{msg.column}" if msg.column is not None else ""
                location = f"{Colors.GRAY} [line {msg.line}{col}]{Colors.END}"
            print(_message_line(msg, location), file=out)
            if msg.extract:
                extract = msg.extract.replace("\n", "↵")[:120]
                print(f"    {Colors.GRAY}{extract}{Colors.END}", file=out)
    if not issues:
        print(file=out)
        print(f"{Colors.GREEN}  All pages passed validation!{Colors.END}", file=out)


def unique_issues(results: Sequence[Optional[PageResult]]) -> List[Tuple[Diagnostic, int]]:
    """Distinct messages (by kind and text) with their occurrence counts."""
    seen: Dict[Tuple[str, str], List] = {}
    for result in results:
        if result is None:
            continue
        for msg in result.messages:
            key = (msg.kind.value, msg.text.strip())
            if key in seen:
                seen[key][1] += 1
            else:
                seen[key] = [msg, 1]
    return [(msg, count) for msg, count in seen.values()]


def _box_row(label: str, value, color: str = "") -> str:
    label_str = f"  {label}"
    value_str = str(value)
    padding = max(0, BOX_WIDTH - len(label_str) - len(value_str))
    return f"{Colors.BOLD}│{Colors.END}{label_str}{' ' * padding}{color}{value_str}{Colors.END}{Colors.BOLD}│{Colors.END}"


def _box_title(title: str, color: str) -> List[str]:
    line = "─" * BOX_WIDTH
    return [
        f"{Colors.BOLD}┌{line}┐{Colors.END}",
        f"{Colors.BOLD}│{Colors.END}{color}{Colors.BOLD}{('  ' + title).ljust(BOX_WIDTH)}{Colors.END}{Colors.BOLD}│{Colors.END}",
        f"{Colors.BOLD}├{line}┤{Colors.END}",
    ]


def print_unique_issues(results: Sequence[Optional[PageResult]], stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout
    issues = unique_issues(results)
    if not issues:
        return
    lines = ["", *_box_title("Unique Issues", Colors.CYAN)]
    lines.append(_box_row("Total occurrences:", sum(count for _, count in issues)))
    lines.append(_box_row("Unique issues:", len(issues), Colors.CYAN))
    lines.append(f"{Colors.BOLD}└{'─' * BOX_WIDTH}┘{Colors.END}")
    lines.append("")
    for msg, count in issues:
        suffix = f"{Colors.GRAY} (×{count} pages){Colors.END}" if count > 1 else ""
        lines.append(_message_line(msg, suffix))
    print("\n".join(lines), file=out)


def print_summary(summary: ReportSummary, output_file: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout

    def flag(value: int, bad: str) -> str:
        return bad if value > 0 else Colors.GREEN

    lines = ["", *_box_title("W3C Validation Summary", Colors.CYAN)]
    lines.append(_box_row("Total pages:", summary.total_pages))
    lines.append(_box_row("Clean pages:", summary.pages_clean, Colors.GREEN))
    lines.append(_box_row("Pages with warnings:", summary.pages_with_warnings, flag(summary.pages_with_warnings, Colors.YELLOW)))
    lines.append(_box_row("Pages with errors:", summary.pages_with_errors, flag(summary.pages_with_errors, Colors.RED)))
    if summary.pages_failed:
        lines.append(_box_row("Failed pages:", summary.pages_failed, Colors.RED))
    lines.append(f"{Colors.BOLD}├{'─' * BOX_WIDTH}┤{Colors.END}")
    lines.append(_box_row("Total errors:", summary.total_errors, flag(summary.total_errors, Colors.RED)))
    lines.append(_box_row("Total warnings:", summary.total_warnings, flag(summary.total_warnings, Colors.YELLOW)))
    lines.append(_box_row("Total infos:", summary.total_infos, Colors.BLUE))
    if output_file:
        lines.append(f"{Colors.BOLD}├{'─' * BOX_WIDTH}┤{Colors.END}")
        lines.append(_box_row("Report saved to:", output_file, Colors.CYAN))
    lines.append(f"{Colors.BOLD}└{'─' * BOX_WIDTH}┘{Colors.END}")
    lines.append("")
    print("\n".join(lines), file=out)
