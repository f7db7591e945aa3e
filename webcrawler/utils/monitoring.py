"""
Prometheus metrics for crawl runs.
"""

import logging
from typing import Optional

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest
from prometheus_client import start_http_server


class CrawlerMonitor:
    """
    Records crawl events as Prometheus metrics.

    Each monitor owns its registry, so several crawls in one process do not
    collide on metric names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.logger = logging.getLogger(__name__)
        self.registry = registry or CollectorRegistry()

        self.pages_stored = Counter(
            'crawler_pages_stored_total',
            'Total number of pages stored',
            ['domain'],
            registry=self.registry
        )
        self.tasks_skipped = Counter(
            'crawler_tasks_skipped_total',
            'Crawl tasks discarded by the admission gate',
            ['reason'],
            registry=self.registry
        )
        self.errors = Counter(
            'crawler_errors_total',
            'Total number of failed units of work',
            ['error_type'],
            registry=self.registry
        )
        self.invalid_links = Counter(
            'crawler_invalid_links_total',
            'Discovered links dropped because they did not parse',
            registry=self.registry
        )
        self.in_flight = Gauge(
            'crawler_in_flight_tasks',
            'Units of work currently dispatched',
            registry=self.registry
        )
        self.queue_size = Gauge(
            'crawler_queue_size',
            'Number of crawl tasks waiting in the queue',
            registry=self.registry
        )
        self.task_duration = Histogram(
            'crawler_task_duration_seconds',
            'Duration of fetch-parse-store units of work',
            registry=self.registry
        )

    def start_server(self, port: int):
        """Expose the registry over HTTP for Prometheus to scrape."""
        start_http_server(port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {port}")

    def record_page_stored(self, domain: str):
        self.pages_stored.labels(domain=domain).inc()

    def record_skip(self, reason: str):
        self.tasks_skipped.labels(reason=reason).inc()

    def record_error(self, error_type: str):
        self.errors.labels(error_type=error_type).inc()

    def record_invalid_link(self):
        self.invalid_links.inc()

    def observe_task(self, duration: float):
        self.task_duration.observe(duration)

    def update_in_flight(self, count: int):
        self.in_flight.set(count)

    def update_queue_size(self, size: int):
        self.queue_size.set(size)

    def get_value(self, name: str, **labels) -> float:
        """Read a sample value back from the registry, 0.0 when absent."""
        value = self.registry.get_sample_value(name, labels or None)
        return value if value is not None else 0.0

    def export_text(self) -> bytes:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.registry)
