"""
Web crawler core components.
"""

from .exceptions import CrawlerError, InvalidURLError, FetchError
from .urls import normalize_url, parse_absolute_url, get_host
from .fetcher import WebFetcher, FetchResult
from .parser import LinkExtractor, Page
from .frontier import CrawlTask, FrontierStore, InMemoryFrontierStore
from .orchestrator import CrawlOrchestrator, CrawlStats, pages_per_domain

__all__ = [
    'CrawlerError', 'InvalidURLError', 'FetchError',
    'normalize_url', 'parse_absolute_url', 'get_host',
    'WebFetcher', 'FetchResult',
    'LinkExtractor', 'Page',
    'CrawlTask', 'FrontierStore', 'InMemoryFrontierStore',
    'CrawlOrchestrator', 'CrawlStats', 'pages_per_domain'
]
