"""
w3c_batch - batch validation of sitemap pages against the W3C Nu HTML checker.
"""

__version__ = "1.0.0"
