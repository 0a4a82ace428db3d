"""
HTML report renderer: a single self-contained page with a stats bar, a
page index with status filters and one collapsible section per validated
page.
"""

from html import escape
from typing import List, Optional, Sequence

from w3c_batch.core.interfaces import ReportRenderer
from w3c_batch.core.models import Diagnostic, MessageKind, PageResult, PageStatus, ReportSummary


_ICONS = {
    MessageKind.ERROR: "✗",
    MessageKind.WARNING: "⚠",
    MessageKind.INFO: "ℹ",
}

_STYLE = """
    *, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }
    :root {
      --error: #dc2626; --warning: #d97706; --info: #2563eb;
      --clean: #16a34a; --failed: #7c3aed;
      --bg: #0f172a; --surface: #1e293b; --surface2: #334155;
      --text: #e2e8f0; --muted: #94a3b8; --border: #334155;
    }
    body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; background: var(--bg);
           color: var(--text); font-size: 14px; line-height: 1.5; }
    header { position: sticky; top: 0; display: flex; gap: 24px; align-items: center;
             padding: 16px 20px; background: var(--surface); border-bottom: 1px solid var(--border); }
    header h1 { font-size: 16px; }
    header .generated { margin-left: auto; font-size: 12px; color: var(--muted); }
    .val { font-weight: 700; }
    .errors .val { color: var(--error); } .warnings .val { color: var(--warning); }
    .clean .val { color: var(--clean); } .failed .val { color: var(--failed); }
    main { padding: 24px; max-width: 960px; margin: 0 auto; }
    nav { margin-bottom: 24px; }
    .filters, .controls { display: flex; gap: 6px; margin-bottom: 12px; }
    .filter-btn, .ctrl-btn { padding: 4px 10px; border-radius: 4px; border: 1px solid var(--border);
                             background: transparent; color: var(--muted); font-size: 12px; cursor: pointer; }
    .filter-btn.active, .filter-btn:hover, .ctrl-btn:hover { background: var(--surface2); color: var(--text); }
    .filter-btn.active { font-weight: 600; }
    .hidden { display: none !important; }
    nav a { display: flex; gap: 8px; padding: 4px 0; color: var(--muted); text-decoration: none; font-size: 12px; }
    nav a.nav-errors { color: var(--error); } nav a.nav-warnings { color: var(--warning); }
    nav a.nav-failed { color: var(--failed); }
    .badge { padding: 0 6px; border-radius: 10px; font-size: 11px; font-weight: 600; }
    .badge-error { color: var(--error); } .badge-warning { color: var(--warning); }
    .badge-clean { color: var(--clean); } .badge-failed { color: var(--failed); }
    section { margin-bottom: 12px; }
    details { border: 1px solid var(--border); border-radius: 8px; overflow: hidden; }
    summary { display: flex; gap: 12px; padding: 12px 16px; cursor: pointer; background: var(--surface); }
    .page-clean { border-left: 3px solid var(--clean); } .page-warnings { border-left: 3px solid var(--warning); }
    .page-errors { border-left: 3px solid var(--error); } .page-failed { border-left: 3px solid var(--failed); }
    .page-url { flex: 1; font-family: monospace; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }
    .stat { font-size: 12px; font-weight: 600; margin-left: 8px; }
    .stat-error { color: var(--error); } .stat-warning { color: var(--warning); }
    .stat-info { color: var(--info); } .stat-clean { color: var(--clean); }
    .page-messages { padding: 12px 16px; }
    .no-issues { color: var(--clean); }
    .message { display: flex; gap: 10px; padding: 8px 0; border-bottom: 1px solid var(--border); }
    .message:last-child { border-bottom: none; }
    .message-error .msg-icon, .message-error .msg-text { color: #fca5a5; }
    .message-warning .msg-icon, .message-warning .msg-text { color: #fcd34d; }
    .message-info .msg-icon, .message-info .msg-text { color: #93c5fd; }
    .msg-location { font-size: 11px; color: var(--muted); font-family: monospace; }
    .msg-extract { margin-top: 6px; padding: 6px 10px; background: var(--surface2); border-radius: 4px;
                   font-size: 12px; color: var(--muted); white-space: pre-wrap; }
"""


_FILTERS = (("all", "All"), ("errors", "Errors"), ("warnings", "Warnings"), ("clean", "Clean"), ("failed", "Failed"))

_SCRIPT = """
  function filterPages(status, btn) {
    document.querySelectorAll('.filter-btn').forEach(b => b.classList.remove('active'));
    btn.classList.add('active');
    document.querySelectorAll('nav .nav-item').forEach(item => {
      item.classList.toggle('hidden', status !== 'all' && !item.classList.contains('nav-' + status));
    });
    document.querySelectorAll('#pages-list .page-section').forEach(section => {
      section.classList.toggle('hidden', status !== 'all' && section.dataset.status !== status);
    });
  }
  function expandAll() {
    document.querySelectorAll('#pages-list .page-section:not(.hidden) details').forEach(d => d.open = true);
  }
  function collapseAll() {
    document.querySelectorAll('#pages-list details').forEach(d => d.open = false);
  }
  document.querySelectorAll('nav .nav-item').forEach(item => {
    item.addEventListener('click', e => {
      const target = document.querySelector(item.getAttribute('href'));
      if (!target) return;
      e.preventDefault();
      target.scrollIntoView({ behavior: 'smooth', block: 'start' });
      const details = target.querySelector('details');
      if (details) details.open = true;
    });
  });
"""


def _render_filters() -> str:
    return "".join(
        f'<button class="filter-btn{" active" if value == "all" else ""}" '
        f"onclick=\"filterPages('{value}', this)\">{label}</button>"
        for value, label in _FILTERS
    )


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _badge(result: PageResult) -> str:
    if result.status == PageStatus.FAILED:
        return '<span class="badge badge-failed">FAILED</span>'
    if result.status == PageStatus.ERRORS:
        return f'<span class="badge badge-error">{_plural(result.count(MessageKind.ERROR), "error")}</span>'
    if result.status == PageStatus.WARNINGS:
        return f'<span class="badge badge-warning">{_plural(result.count(MessageKind.WARNING), "warning")}</span>'
    return '<span class="badge badge-clean">✓</span>'


def _render_message(msg: Diagnostic) -> str:
    location = ""
    if msg.line is not None:
        col = f":{msg.column}" if msg.column is not None else ""
        location = f'<span class="msg-location">line {msg.line}{col}</span>'
    extract = f'<pre class="msg-extract">{escape(msg.extract)}</pre>' if msg.extract else ""
    return (
        f'<div class="message message-{msg.kind.value}">'
        f'<span class="msg-icon">{_ICONS[msg.kind]}</span>'
        f'<div class="msg-content"><span class="msg-text">{escape(msg.text)}</span>'
        f"{location}{extract}</div></div>"
    )


def _render_stats(result: PageResult) -> str:
    if result.status == PageStatus.FAILED:
        reason = escape(result.error_message or "Unknown error")
        return f'<span class="stat stat-error">Failed: {reason}</span>'
    parts = []
    errors = result.count(MessageKind.ERROR)
    warnings = result.count(MessageKind.WARNING)
    infos = result.count(MessageKind.INFO)
    if errors:
        parts.append(f'<span class="stat stat-error">{_plural(errors, "error")}</span>')
    if warnings:
        parts.append(f'<span class="stat stat-warning">{_plural(warnings, "warning")}</span>')
    if infos:
        parts.append(f'<span class="stat stat-info">{infos} info</span>')
    if result.status == PageStatus.CLEAN:
        parts.append('<span class="stat stat-clean">✓ Valid</span>')
    return "".join(parts)


def _render_page(result: PageResult, position: int) -> str:
    messages = "".join(_render_message(m) for m in result.messages)
    if not messages and result.status != PageStatus.FAILED:
        messages = '<p class="no-issues">No issues found.</p>'
    is_open = "" if result.status == PageStatus.CLEAN else " open"
    return (
        f'<section id="page-{position}" class="page-section" data-status="{result.status.value}">'
        f"<details{is_open}>"
        f'<summary class="page-{result.status.value}">'
        f'<span class="page-index">#{position}</span>'
        f'<span class="page-url">{escape(result.url)}</span>'
        f'<span class="page-stats">{_render_stats(result)}</span>'
        f"</summary>"
        f'<div class="page-messages">{messages}</div>'
        f"</details></section>"
    )


def _render_nav_item(result: PageResult, position: int) -> str:
    return (
        f'<a href="#page-{position}" class="nav-item nav-{result.status.value}" title="{escape(result.url)}">'
        f"<span>{position}</span><span>{escape(result.url)}</span>{_badge(result)}</a>"
    )


class HtmlReportRenderer(ReportRenderer):
    """Renders the results of a job as a standalone HTML document."""

    def render(
        self, results: Sequence[Optional[PageResult]], summary: ReportSummary
    ) -> bytes:
        pages: List[PageResult] = [r for r in results if r is not None]
        nav = "".join(_render_nav_item(r, i + 1) for i, r in enumerate(pages))
        sections = "".join(_render_page(r, i + 1) for i, r in enumerate(pages))
        generated = summary.generated_at.isoformat()

        document = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>W3C Validation Report — {escape(summary.base_url)}</title>
  <style>{_STYLE}</style>
</head>
<body>
<header>
  <h1>W3C Validation Report</h1>
  <span class="total">Pages: <span class="val">{summary.total_pages}</span></span>
  <span class="clean">Clean: <span class="val">{summary.pages_clean}</span></span>
  <span class="warnings">Warnings: <span class="val">{summary.pages_with_warnings}</span></span>
  <span class="errors">Errors: <span class="val">{summary.pages_with_errors}</span></span>
  <span class="failed">Failed: <span class="val">{summary.pages_failed}</span></span>
  <span class="generated">Generated {escape(generated)}</span>
</header>
<main>
  <div class="filters">{_render_filters()}</div>
  <nav>{nav}</nav>
  <div class="controls">
    <button class="ctrl-btn" onclick="expandAll()">Expand All</button>
    <button class="ctrl-btn" onclick="collapseAll()">Collapse All</button>
  </div>
  <div id="pages-list">{sections}</div>
</main>
<script>{_SCRIPT}</script>
</body>
</html>
"""
        return document.encode("utf-8")
