"""
Command line interface for the web crawler.
"""

import asyncio
import argparse
import logging
import signal
import sys
from typing import List, Optional

from . import __version__
from .crawler.exceptions import InvalidURLError
from .crawler.orchestrator import CrawlOrchestrator, pages_per_domain
from .crawler.parser import Page
from .storage.redis_store import create_frontier_store
from .utils.config import Config, load_config, default_config
from .utils.logger import setup_logging
from .utils.monitoring import CrawlerMonitor


class CrawlerApp:
    """Main application class for the web crawler."""

    def __init__(self):
        self.orchestrator: Optional[CrawlOrchestrator] = None
        self.logger = logging.getLogger(__name__)
        self._previous_handlers = {}

    def setup_signal_handlers(self):
        """Stop the crawl gracefully on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, initiating shutdown...")
            if self.orchestrator:
                loop.call_soon_threadsafe(self.orchestrator.stop)

        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[signum] = signal.signal(signum, signal_handler)

    def restore_signal_handlers(self):
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    async def run(self, config: Config, start_url: str,
                  max_duration: Optional[float] = None) -> int:
        """Run one crawl and report the summary. Returns the process exit code."""
        monitor = None
        if config.monitoring.metrics_enabled:
            monitor = CrawlerMonitor()
            monitor.start_server(config.monitoring.prometheus_port)

        store = create_frontier_store(config)
        self.orchestrator = CrawlOrchestrator(config.crawler, store=store, monitor=monitor)
        self.setup_signal_handlers()

        self.logger.info("=== WEB CRAWLER STARTING ===")
        self.logger.info(f"Seed URL: {start_url}")
        self.logger.info(f"Max depth: {config.crawler.max_depth}")
        self.logger.info(f"Max pages per domain: {config.crawler.max_pages_per_domain}")
        self.logger.info(f"Concurrent requests: {config.crawler.concurrent_requests}")
        self.logger.info(f"Politeness delay: {config.crawler.delay_ms}ms")
        self.logger.info(f"Storage backend: {config.storage.backend}")

        try:
            pages = await self.orchestrator.crawl(start_url, max_duration=max_duration)
        except InvalidURLError as e:
            self.logger.error(f"Cannot start crawl: {e}")
            return 1
        finally:
            self.restore_signal_handlers()
            await store.close()

        self.report(pages, self.orchestrator.stats.elapsed_time)
        self.logger.info("=== WEB CRAWLER FINISHED ===")
        return 0

    def report(self, pages: List[Page], elapsed: float):
        """Log the crawl summary: total pages and per-domain breakdown."""
        self.logger.info(f"Crawl complete! Fetched {len(pages)} pages in {elapsed:.2f}s")

        if pages:
            self.logger.info("Pages per domain:")
            for domain, count in pages_per_domain(pages).items():
                self.logger.info(f"  {domain}: {count}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bounded-concurrency web crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  webcrawler -u https://example.com                  # Crawl with defaults
  webcrawler -u https://example.com -d 3 -m 200      # Deeper, larger crawl
  webcrawler -u https://example.com -c 20            # More concurrency
  webcrawler -u https://example.com --config c.yaml  # Load settings from YAML
  webcrawler -u https://example.com --max-duration 600
        """
    )

    parser.add_argument('-u', '--url', required=True, help='Seed URL to start crawling from')
    parser.add_argument('-d', '--depth', type=int, default=None,
                        help='Maximum link depth from the seed (default: 2)')
    parser.add_argument('-m', '--max-pages', type=int, default=None,
                        help='Maximum pages stored per domain (default: 50)')
    parser.add_argument('-c', '--concurrency', type=int, default=None,
                        help='Maximum concurrent requests (default: 10)')
    parser.add_argument('--delay-ms', type=int, default=None,
                        help='Minimum delay between requests to the same host')
    parser.add_argument('--user-agent', default=None, help='User-Agent header to send')
    parser.add_argument('--config', default=None, help='Path to a YAML configuration file')
    parser.add_argument('--max-duration', type=float, default=None,
                        help='Stop dequeuing new work after this many seconds')
    parser.add_argument('--log-level', default=None, help='Log level (default: INFO)')
    parser.add_argument('--log-json', action='store_true', help='Emit logs as JSON lines')
    parser.add_argument('--version', action='version', version=f'Web Crawler {__version__}')

    return parser


# CLI defaults apply only when no config file is given
CLI_DEFAULTS = {'max_depth': 2, 'max_pages_per_domain': 50, 'concurrent_requests': 10}


def resolve_config(args: argparse.Namespace) -> Config:
    """Merge the optional config file with command line overrides."""
    if args.config:
        config = load_config(args.config)
    else:
        config = default_config()
        config.crawler = config.crawler.with_overrides(**CLI_DEFAULTS)

    config.crawler = config.crawler.with_overrides(
        max_depth=args.depth,
        max_pages_per_domain=args.max_pages,
        concurrent_requests=args.concurrency,
        delay_ms=args.delay_ms,
        user_agent=args.user_agent
    )

    if args.log_level:
        if not isinstance(logging.getLevelName(args.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {args.log_level}")
        config.logging.level = args.log_level

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging, enable_json=args.log_json)

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config, args.url, max_duration=args.max_duration))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
    except Exception as e:
        logging.getLogger(__name__).error(f"Fatal error: {e}", exc_info=True)
        return 1
