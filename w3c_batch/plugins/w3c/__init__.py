"""
W3C Nu HTML Checker plugin.
"""

from .checker import W3CChecker, parse_messages

__all__ = ["W3CChecker", "parse_messages"]
