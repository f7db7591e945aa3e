"""
Exception types raised by the crawler components.
"""


class CrawlerError(Exception):
    """Base class for crawler errors."""
    pass


class InvalidURLError(CrawlerError, ValueError):
    """Raised when a string is not a crawlable absolute URL."""

    def __init__(self, url: str, reason: str = "not an absolute http(s) URL"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class FetchError(CrawlerError):
    """Raised when a page could not be fetched."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")
