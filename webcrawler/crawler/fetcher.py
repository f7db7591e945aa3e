"""
Web page fetcher with per-host politeness delay.
"""

import asyncio
import aiohttp
import logging
import time
from typing import Optional, Dict
from dataclasses import dataclass
from aiohttp import ClientSession, ClientTimeout, ClientError

from .exceptions import FetchError
from .urls import get_host


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: int
    content: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    error: Optional[str] = None
    fetch_time: float = 0.0
    content_type: Optional[str] = None
    encoding: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.content is not None


class WebFetcher:
    """
    Fetches web pages with per-host rate limiting and error handling.

    Request starts to the same host are spaced at least ``delay_ms`` apart,
    no matter how many tasks are fetching from that host concurrently.
    """

    MAX_CONTENT_SIZE = 10 * 1024 * 1024

    def __init__(self, user_agent: str, request_timeout: float = 10,
                 delay_ms: int = 1000, max_connections: int = 10,
                 session: Optional[ClientSession] = None):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.delay = delay_ms / 1000.0
        self.max_connections = max_connections

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = session
        self._owns_session = session is None

        # Politeness state, one lock per host
        self._host_locks: Dict[str, asyncio.Lock] = {}
        self._last_access: Dict[str, float] = {}

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_connections * 2,
                    limit_per_host=self.max_connections,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self._owns_session = True
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def _wait_for_turn(self, host: str):
        """Block until ``host`` may receive another request, then claim the slot."""
        lock = self._host_locks.setdefault(host, asyncio.Lock())
        async with lock:
            last_access = self._last_access.get(host)
            if last_access is not None:
                wait = self.delay - (time.monotonic() - last_access)
                if wait > 0:
                    self.logger.debug(f"Politeness delay {wait:.2f}s for {host}")
                    await asyncio.sleep(wait)
            self._last_access[host] = time.monotonic()

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult object containing the response data or error information
        """
        if self.session is None:
            await self.start()

        start_time = time.time()
        await self._wait_for_turn(get_host(url))

        try:
            self.stats['total_requests'] += 1

            async with self.session.get(url) as response:
                fetch_time = time.time() - start_time

                headers = dict(response.headers)
                content_type = response.headers.get('content-type', '').lower()

                if not 200 <= response.status < 300:
                    self.stats['failed_requests'] += 1
                    self.logger.warning(f"HTTP {response.status} fetching {url}")
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        headers=headers,
                        content_type=content_type,
                        error=f"HTTP status {response.status}",
                        fetch_time=fetch_time
                    )

                # Only download text content
                if not self._is_text_content(content_type):
                    self.stats['failed_requests'] += 1
                    self.logger.debug(f"Skipping non-text content: {url} ({content_type})")
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        headers=headers,
                        content_type=content_type,
                        error="Non-text content type",
                        fetch_time=fetch_time
                    )

                content = await self._read_content_safely(response)
                if content is None:
                    self.stats['failed_requests'] += 1
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        headers=headers,
                        content_type=content_type,
                        error="Content unreadable or too large",
                        fetch_time=fetch_time
                    )

                self.stats['total_bytes_downloaded'] += len(content)
                self.stats['successful_requests'] += 1

                self.logger.debug(f"Fetched {url}: {response.status} ({len(content)} chars)")
                return FetchResult(
                    url=url,
                    status_code=response.status,
                    content=content,
                    headers=headers,
                    content_type=content_type,
                    encoding=response.charset,
                    fetch_time=fetch_time
                )

        except asyncio.TimeoutError:
            self.stats['failed_requests'] += 1
            error_msg = "Request timeout"
            self.logger.warning(f"Timeout fetching {url}")

        except ClientError as e:
            self.stats['failed_requests'] += 1
            error_msg = f"Client error: {str(e)}"
            self.logger.warning(f"Client error fetching {url}: {e}")

        return FetchResult(
            url=url,
            status_code=0,
            error=error_msg,
            fetch_time=time.time() - start_time
        )

    async def fetch_text(self, url: str) -> str:
        """
        Fetch a URL and return its document text.

        Raises:
            FetchError: on any network, HTTP status or content failure
        """
        result = await self.fetch(url)
        if not result.ok:
            raise FetchError(url, result.error or "Empty response")
        return result.content

    def _is_text_content(self, content_type: str) -> bool:
        """Check if content type is text-based."""
        text_types = [
            'text/html',
            'text/plain',
            'text/xml',
            'application/xml',
            'application/xhtml+xml'
        ]

        # Servers that omit the header are given the benefit of the doubt
        if not content_type:
            return True

        return any(text_type in content_type for text_type in text_types)

    async def _read_content_safely(self, response) -> Optional[str]:
        """
        Read response content with a size limit.

        Returns:
            Content string or None if too large
        """
        max_size = self.MAX_CONTENT_SIZE
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > max_size:
            self.logger.warning(f"Content too large ({content_length} bytes): {response.url}")
            return None

        # Read content in chunks to respect size limit
        content_bytes = bytearray()
        async for chunk in response.content.iter_chunked(8192):
            content_bytes.extend(chunk)
            if len(content_bytes) > max_size:
                self.logger.warning(f"Content exceeded size limit during reading: {response.url}")
                return None

        encoding = response.charset or 'utf-8'
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            # Try common encodings
            for fallback_encoding in ['utf-8', 'cp1252']:
                try:
                    return content_bytes.decode(fallback_encoding)
                except UnicodeDecodeError:
                    continue

            return content_bytes.decode('latin-1')

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
