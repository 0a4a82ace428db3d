"""
Job observers and report renderers.
"""

from .console import ConsoleSink
from .html_report import HtmlReportRenderer

__all__ = ["ConsoleSink", "HtmlReportRenderer"]
