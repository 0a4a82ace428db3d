"""
Exception hierarchy for the batch validator.
"""


class W3CBatchError(Exception):
    """Base class for all errors raised by the package."""


class SitemapError(W3CBatchError):
    """The submitted sitemap cannot produce a URL list."""


class MalformedXml(SitemapError):
    pass


class EmptySitemap(SitemapError):
    pass


class InvalidUrl(W3CBatchError):
    pass


class FetchError(W3CBatchError):
    """A remote resource could not be retrieved."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
