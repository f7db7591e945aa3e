"""
Test configuration and fixtures for crawler tests
"""

import asyncio
from collections import Counter
from typing import Dict, Iterable, Optional

import pytest

from webcrawler.crawler.exceptions import FetchError
from webcrawler.utils.config import CrawlConfig


def html_page(*links: str, title: str = "page") -> str:
    anchors = "".join(f'<a href="{link}">{link}</a>' for link in links)
    return f"<html><head><title>{title}</title></head><body>{anchors}</body></html>"


class FakeFetcher:
    """Serves documents from an in-memory site map and records every fetch."""

    def __init__(self, site: Dict[str, str], latency: float = 0.0,
                 failing: Optional[Iterable[str]] = None):
        self.site = site
        self.latency = latency
        self.failing = set(failing or ())
        self.fetch_counts: Counter = Counter()
        self.active = 0
        self.max_active = 0

    async def fetch_text(self, url: str) -> str:
        self.fetch_counts[url] += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.latency)
            if url in self.failing or url not in self.site:
                raise FetchError(url, "simulated network error")
            return self.site[url]
        finally:
            self.active -= 1


@pytest.fixture
def make_page():
    """Build an HTML document linking to the given URLs"""
    return html_page


@pytest.fixture
def fake_fetcher():
    """Factory for FakeFetcher instances"""
    return FakeFetcher


@pytest.fixture
def crawl_config():
    """Crawl settings with no politeness delay"""
    def _build(**overrides) -> CrawlConfig:
        settings = {
            'max_depth': 2,
            'max_pages_per_domain': 100,
            'concurrent_requests': 4,
            'delay_ms': 0,
        }
        settings.update(overrides)
        return CrawlConfig(**settings)

    return _build
