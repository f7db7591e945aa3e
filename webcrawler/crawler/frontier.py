"""
Frontier state for a single crawl: visited URLs, stored pages and
per-domain page counters.
"""

import logging
from typing import Dict, Set, Optional, List, Any
from dataclasses import dataclass

from .parser import Page
from .urls import normalize_url


@dataclass(frozen=True)
class CrawlTask:
    """A URL waiting to be crawled at a given depth."""
    url: str
    depth: int
    parent_url: Optional[str] = None


class FrontierStore:
    """
    Interface for the crawl's shared state.

    ``mark_visited`` is the only dedup gate: it must test and insert in a
    single atomic step and return True only to the first caller for a URL.
    """

    async def is_visited(self, url: str) -> bool:
        raise NotImplementedError

    async def mark_visited(self, url: str) -> bool:
        raise NotImplementedError

    async def domain_page_count(self, host: str) -> int:
        raise NotImplementedError

    async def store_page(self, page: Page):
        raise NotImplementedError

    async def get_pages(self) -> List[Page]:
        raise NotImplementedError

    async def get_stats(self) -> Dict[str, Any]:
        raise NotImplementedError

    async def close(self):
        """Release any resources held by the store."""
        pass


class InMemoryFrontierStore(FrontierStore):
    """
    Frontier store kept in process memory.

    None of the methods suspend, so on a single event loop each call runs to
    completion before any other task observes the state.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.visited_urls: Set[str] = set()
        self.pages: List[Page] = []
        self.pages_per_domain: Dict[str, int] = {}

    async def is_visited(self, url: str) -> bool:
        return normalize_url(url) in self.visited_urls

    async def mark_visited(self, url: str) -> bool:
        normalized = normalize_url(url)
        if normalized in self.visited_urls:
            return False
        self.visited_urls.add(normalized)
        return True

    async def domain_page_count(self, host: str) -> int:
        return self.pages_per_domain.get(host.lower(), 0)

    async def store_page(self, page: Page):
        host = page.host
        self.pages_per_domain[host] = self.pages_per_domain.get(host, 0) + 1
        self.pages.append(page)
        self.logger.debug(f"Stored page {page.url} ({host}: {self.pages_per_domain[host]})")

    async def get_pages(self) -> List[Page]:
        return list(self.pages)

    async def get_stats(self) -> Dict[str, Any]:
        return {
            'visited_urls': len(self.visited_urls),
            'pages_stored': len(self.pages),
            'domains': len(self.pages_per_domain)
        }
