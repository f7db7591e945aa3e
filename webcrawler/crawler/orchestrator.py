"""
Crawl orchestrator: turns a seed URL into a bounded, deduplicated traversal.

The dequeue loop in ``CrawlOrchestrator.crawl`` is the only place that makes
admission decisions (depth, visited check-and-set, domain cap). Units of work
run as asyncio tasks, gated by a semaphore, and feed discovered links back
into the same queue.
"""

import asyncio
import logging
import time
from collections import Counter
from typing import Dict, Iterable, List, Optional, Set
from dataclasses import dataclass, field

from .exceptions import FetchError, InvalidURLError
from .fetcher import WebFetcher
from .frontier import CrawlTask, FrontierStore, InMemoryFrontierStore
from .parser import LinkExtractor, Page
from .urls import get_host, parse_absolute_url
from ..utils.config import CrawlConfig
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMonitor


@dataclass
class CrawlStats:
    """Statistics for one crawl run."""
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    tasks_admitted: int = 0
    pages_stored: int = 0
    failed: int = 0
    skipped_depth: int = 0
    skipped_visited: int = 0
    skipped_domain: int = 0
    invalid_links: int = 0
    links_queued: int = 0

    @property
    def elapsed_time(self) -> float:
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time

    @property
    def pages_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.pages_stored / elapsed_minutes if elapsed_minutes > 0 else 0


def pages_per_domain(pages: Iterable[Page]) -> Dict[str, int]:
    """Count pages by host, most prolific first."""
    return dict(Counter(page.host for page in pages).most_common())


class CrawlOrchestrator:
    """
    Coordinates fetcher, extractor and frontier store for a crawl.

    Collaborators may be injected; anything left out is built from the
    config when ``crawl`` starts and torn down when it returns.
    """

    def __init__(self, config: CrawlConfig,
                 fetcher: Optional[WebFetcher] = None,
                 extractor: Optional[LinkExtractor] = None,
                 store: Optional[FrontierStore] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.config = config
        self.fetcher = fetcher
        self.extractor = extractor or LinkExtractor()
        self.store = store
        self.monitor = monitor
        self.logger = get_crawler_logger(__name__, component='orchestrator')

        self.stats = CrawlStats()
        self.is_running = False
        self._stop_requested = False

        # Per-run state, reset by crawl()
        self._queue: Optional[asyncio.Queue] = None
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._active_store: Optional[FrontierStore] = None
        self._active_fetcher: Optional[WebFetcher] = None

    async def crawl(self, start_url: str, max_duration: Optional[float] = None) -> List[Page]:
        """
        Crawl outward from ``start_url`` until the frontier drains.

        Args:
            start_url: Absolute http(s) seed URL
            max_duration: Seconds after which the crawl stops dequeuing (None for no limit)

        Returns:
            Every page stored during the run, in storage order

        Raises:
            InvalidURLError: if ``start_url`` is not a valid absolute URL
        """
        if self.is_running:
            raise RuntimeError("Crawl already running on this orchestrator")

        seed = parse_absolute_url(start_url)

        self.is_running = True
        self._stop_requested = False
        self.stats = CrawlStats()
        self._queue = asyncio.Queue()
        self._semaphore = asyncio.Semaphore(self.config.concurrent_requests)
        self._in_flight = set()
        self._active_store = self.store or InMemoryFrontierStore()

        owns_fetcher = self.fetcher is None
        self._active_fetcher = self.fetcher or WebFetcher(
            user_agent=self.config.user_agent,
            request_timeout=self.config.request_timeout,
            delay_ms=self.config.delay_ms,
            max_connections=self.config.concurrent_requests
        )

        stop_handle = None
        if max_duration is not None:
            stop_handle = asyncio.get_running_loop().call_later(max_duration, self.stop)

        self.logger.info(
            f"Starting crawl at {seed} (max_depth={self.config.max_depth}, "
            f"max_pages_per_domain={self.config.max_pages_per_domain}, "
            f"concurrency={self.config.concurrent_requests})"
        )
        self._queue.put_nowait(CrawlTask(url=seed, depth=0))

        try:
            if owns_fetcher:
                await self._active_fetcher.start()
            await self._run_loop()
            pages = await self._active_store.get_pages()
        finally:
            if self._in_flight:
                await asyncio.gather(*self._in_flight, return_exceptions=True)
            if stop_handle is not None:
                stop_handle.cancel()
            if owns_fetcher:
                await self._active_fetcher.close()
            self.stats.end_time = time.time()
            self.is_running = False

        self._log_final_stats(pages)
        return pages

    def stop(self):
        """
        Ask a running crawl to stop.

        No further tasks are dequeued; dispatched units of work finish and
        their pages are kept.
        """
        if self.is_running and not self._stop_requested:
            self.logger.info("Stop requested, draining in-flight work")
            self._stop_requested = True

    async def _run_loop(self):
        while not self._stop_requested:
            if self._queue.empty():
                pending = {unit for unit in self._in_flight if not unit.done()}
                if not pending:
                    break
                # A finishing unit may enqueue more work
                await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                continue

            task = self._queue.get_nowait()
            self._update_gauges()
            await self._admit(task)

        if self._stop_requested and not self._queue.empty():
            self.logger.info(f"Crawl stopped with {self._queue.qsize()} tasks still queued")

        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _admit(self, task: CrawlTask):
        """Run the admission gate for one task and dispatch it if it passes."""
        if task.depth > self.config.max_depth:
            self._record_skip('depth')
            self.logger.debug(f"Skipping URL beyond max depth: {task.url}")
            return

        if not await self._active_store.mark_visited(task.url):
            self._record_skip('visited')
            return

        host = get_host(task.url)
        if await self._domain_full(host):
            self._skip_domain(task)
            return

        await self._semaphore.acquire()

        # Pages may have been stored while waiting for the slot
        if await self._domain_full(host):
            self._semaphore.release()
            self._skip_domain(task)
            return

        self.stats.tasks_admitted += 1
        unit = asyncio.create_task(self._process_task(task))
        self._in_flight.add(unit)
        unit.add_done_callback(self._on_task_done)
        self._update_gauges()

    async def _domain_full(self, host: str) -> bool:
        count = await self._active_store.domain_page_count(host)
        return count >= self.config.max_pages_per_domain

    def _skip_domain(self, task: CrawlTask):
        self._record_skip('domain')
        self.logger.warning(f"Skipping {task.url}: reached max pages for domain")

    def _record_skip(self, reason: str):
        if reason == 'depth':
            self.stats.skipped_depth += 1
        elif reason == 'visited':
            self.stats.skipped_visited += 1
        else:
            self.stats.skipped_domain += 1

        if self.monitor:
            self.monitor.record_skip(reason)

    def _on_task_done(self, unit: asyncio.Task):
        self._in_flight.discard(unit)
        self._update_gauges()

    def _update_gauges(self):
        if self.monitor:
            self.monitor.update_in_flight(len(self._in_flight))
            self.monitor.update_queue_size(self._queue.qsize())

    async def _process_task(self, task: CrawlTask):
        """Fetch, parse and store one page, then queue its links."""
        start_time = time.monotonic()

        try:
            self.logger.info(f"Fetching {task.url}")
            content = await self._active_fetcher.fetch_text(task.url)
            page = self.extractor.parse(task.url, content, task.depth)

            await self._active_store.store_page(page)
            self.stats.pages_stored += 1
            if self.monitor:
                self.monitor.record_page_stored(page.host)

            if task.depth < self.config.max_depth:
                self._queue_links(page)

        except FetchError as e:
            self.stats.failed += 1
            if self.monitor:
                self.monitor.record_error('fetch')
            self._log_failure(logging.WARNING, task, e.reason)

        except Exception as e:
            self.stats.failed += 1
            if self.monitor:
                self.monitor.record_error(type(e).__name__)
            self._log_failure(logging.ERROR, task, e, exc_info=True)

        finally:
            self._semaphore.release()
            if self.monitor:
                self.monitor.observe_task(time.monotonic() - start_time)

    def _log_failure(self, level: int, task: CrawlTask, reason, **kwargs):
        message = f"Error processing {task.url}: {reason}"
        extra_fields = {}
        if task.parent_url:
            message += f" (linked from {task.parent_url})"
            extra_fields['parent_url'] = task.parent_url
        self.logger.log_url_event(level, task.url, message,
                                  extra={'extra_fields': extra_fields}, **kwargs)

    def _queue_links(self, page: Page):
        """Queue a page's links one level deeper, dropping any that do not parse."""
        queued = 0
        for link in page.links:
            try:
                url = parse_absolute_url(link)
            except InvalidURLError as e:
                self.stats.invalid_links += 1
                if self.monitor:
                    self.monitor.record_invalid_link()
                self.logger.debug(f"Invalid link {link!r} found on {page.url} (depth {page.depth}): {e}")
                continue

            self._queue.put_nowait(CrawlTask(url=url, depth=page.depth + 1, parent_url=page.url))
            queued += 1

        self.stats.links_queued += queued
        self.logger.debug(f"Queued {queued} links from {page.url}")

    def _log_final_stats(self, pages: List[Page]):
        self.logger.info(
            f"Crawl finished: stored={self.stats.pages_stored}, failed={self.stats.failed}, "
            f"skipped(depth={self.stats.skipped_depth}, visited={self.stats.skipped_visited}, "
            f"domain={self.stats.skipped_domain}), invalid_links={self.stats.invalid_links}, "
            f"elapsed={self.stats.elapsed_time:.2f}s, domains={len(pages_per_domain(pages))}"
        )

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        return {
            'tasks_admitted': self.stats.tasks_admitted,
            'pages_stored': self.stats.pages_stored,
            'failed': self.stats.failed,
            'skipped_depth': self.stats.skipped_depth,
            'skipped_visited': self.stats.skipped_visited,
            'skipped_domain': self.stats.skipped_domain,
            'invalid_links': self.stats.invalid_links,
            'links_queued': self.stats.links_queued,
            'elapsed_time': self.stats.elapsed_time,
            'pages_per_minute': self.stats.pages_per_minute,
            'in_flight': len(self._in_flight),
            'is_running': self.is_running
        }
