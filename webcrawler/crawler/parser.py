"""
HTML link extraction and page construction.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit
from dataclasses import dataclass, field
from bs4 import BeautifulSoup

from .urls import ALLOWED_SCHEMES, get_host


@dataclass(frozen=True)
class Page:
    """A fetched page as recorded by the frontier store."""
    url: str
    depth: int
    content: str
    links: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def host(self) -> str:
        return get_host(self.url)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'url': self.url,
            'depth': self.depth,
            'content': self.content,
            'links': list(self.links)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Page':
        """Create Page from dictionary."""
        return cls(
            url=data['url'],
            depth=data['depth'],
            content=data.get('content', ''),
            links=tuple(data.get('links', ()))
        )


class LinkExtractor:
    """
    Extracts absolute http/https links from HTML documents.
    """

    def __init__(self, features: str = 'lxml'):
        self.features = features
        self.logger = logging.getLogger(__name__)

    def extract(self, base_url: str, html_content: str) -> List[str]:
        """
        Extract outbound links from a document.

        Relative hrefs are resolved against ``base_url``. Fragments are
        dropped, non-http(s) schemes are discarded and malformed hrefs are
        skipped one by one. Links come back in document order without
        duplicates.
        """
        soup = BeautifulSoup(html_content, self.features)
        links: Dict[str, None] = {}

        for anchor in soup.find_all('a', href=True):
            link = self._resolve(base_url, anchor['href'])
            if link:
                links.setdefault(link, None)

        self.logger.debug(f"Extracted {len(links)} links from {base_url}")
        return list(links)

    def parse(self, url: str, html_content: str, depth: int) -> Page:
        """Build a Page for ``url`` from its document text."""
        links = self.extract(url, html_content)
        return Page(url=url, depth=depth, content=html_content, links=tuple(links))

    def _resolve(self, base_url: str, href: Any) -> Optional[str]:
        if not isinstance(href, str):
            return None

        href = href.strip()
        if not href or href.startswith('#'):
            return None

        try:
            parsed = urlsplit(urljoin(base_url, href))
            if parsed.scheme not in ALLOWED_SCHEMES or not parsed.hostname:
                return None
        except ValueError:
            self.logger.debug(f"Skipping malformed href on {base_url}: {href!r}")
            return None

        return urlunsplit((parsed.scheme, parsed.netloc, parsed.path, parsed.query, ''))
