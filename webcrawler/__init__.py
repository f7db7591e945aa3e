"""
Web Crawler

A bounded-concurrency web crawler: depth-limited, deduplicated and capped
per domain.
"""

__version__ = "1.0.0"
__description__ = "A bounded-concurrency asyncio web crawler"
