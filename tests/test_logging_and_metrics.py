"""
Logging and Monitoring Tests
"""

import io
import json
import logging

import pytest

from webcrawler.utils.config import LoggingConfig
from webcrawler.utils.logger import JSONFormatter, NoiseFilter, get_crawler_logger, setup_logging
from webcrawler.utils.monitoring import CrawlerMonitor


@pytest.fixture
def json_stream():
    """Attach a JSON handler to a dedicated logger and yield its output stream"""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger = logging.getLogger("tests.json")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield stream
    logger.removeHandler(handler)


def read_records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_adapter_context_in_json(json_stream):
    logger = get_crawler_logger("tests.json", component="orchestrator")

    logger.info("hello")

    [record] = read_records(json_stream)
    assert record['message'] == "hello"
    assert record['level'] == "INFO"
    assert record['component'] == "orchestrator"


def test_log_url_event(json_stream):
    logger = get_crawler_logger("tests.json", component="orchestrator")

    logger.log_url_event(logging.WARNING, "http://example.com/", "fetch failed")

    [record] = read_records(json_stream)
    assert record['url'] == "http://example.com/"
    assert record['event_type'] == "url_event"
    assert record['component'] == "orchestrator"
    assert record['level'] == "WARNING"


def test_json_formatter_includes_exception(json_stream):
    logger = logging.getLogger("tests.json")

    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.error("failed", exc_info=True)

    [record] = read_records(json_stream)
    assert "RuntimeError: boom" in record['exception']


def test_noise_filter():
    noise_filter = NoiseFilter()

    assert noise_filter.filter(logging.makeLogRecord({'name': 'aiohttp.access'})) is False
    assert noise_filter.filter(logging.makeLogRecord({'name': 'webcrawler.crawler'})) is True


def test_setup_logging_with_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    log_file = tmp_path / "logs" / "crawler.log"

    try:
        setup_logging(LoggingConfig(level="DEBUG", file=str(log_file)))
        logging.getLogger("webcrawler.test").debug("written to file")
        for handler in root.handlers:
            handler.flush()

        assert root.level == logging.DEBUG
        assert log_file.exists()
        assert "written to file" in log_file.read_text()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_monitor_counters():
    monitor = CrawlerMonitor()

    monitor.record_page_stored("example.com")
    monitor.record_page_stored("example.com")
    monitor.record_skip("domain")
    monitor.record_error("fetch")
    monitor.record_invalid_link()
    monitor.update_in_flight(3)
    monitor.update_queue_size(7)
    monitor.observe_task(0.25)

    assert monitor.get_value('crawler_pages_stored_total', domain='example.com') == 2
    assert monitor.get_value('crawler_tasks_skipped_total', reason='domain') == 1
    assert monitor.get_value('crawler_errors_total', error_type='fetch') == 1
    assert monitor.get_value('crawler_invalid_links_total') == 1
    assert monitor.get_value('crawler_in_flight_tasks') == 3
    assert monitor.get_value('crawler_queue_size') == 7
    assert monitor.get_value('crawler_task_duration_seconds_count') == 1
    assert monitor.get_value('crawler_pages_stored_total', domain='other.org') == 0.0


def test_monitors_do_not_share_registries():
    first = CrawlerMonitor()
    second = CrawlerMonitor()

    first.record_error("fetch")

    assert second.get_value('crawler_errors_total', error_type='fetch') == 0.0
    assert b"crawler_errors_total" in first.export_text()
