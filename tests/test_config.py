"""
Configuration Tests
"""

import dataclasses
import pytest

from webcrawler.utils.config import (
    Config, ConfigManager, CrawlConfig, DEFAULT_USER_AGENT, default_config, load_config
)


def test_crawl_config_defaults():
    config = CrawlConfig()

    assert config.max_depth == 3
    assert config.max_pages_per_domain == 100
    assert config.concurrent_requests == 5
    assert config.delay_ms == 1000
    assert config.user_agent == DEFAULT_USER_AGENT
    assert config.respect_robots_txt is True
    assert config.request_timeout == 10.0


def test_crawl_config_is_immutable():
    config = CrawlConfig()

    with pytest.raises(dataclasses.FrozenInstanceError):
        config.max_depth = 5


@pytest.mark.parametrize("field_name, value", [
    ("max_depth", -1),
    ("max_pages_per_domain", 0),
    ("concurrent_requests", 0),
    ("delay_ms", -5),
    ("user_agent", ""),
    ("request_timeout", 0),
])
def test_crawl_config_validation(field_name, value):
    with pytest.raises(ValueError, match=field_name):
        CrawlConfig(**{field_name: value})


def test_max_depth_zero_allowed():
    assert CrawlConfig(max_depth=0).max_depth == 0


def test_with_overrides_ignores_none():
    config = CrawlConfig(max_depth=2)

    updated = config.with_overrides(max_depth=None, concurrent_requests=8)

    assert updated.max_depth == 2
    assert updated.concurrent_requests == 8
    assert config.concurrent_requests == 5


def test_with_overrides_validates():
    with pytest.raises(ValueError):
        CrawlConfig().with_overrides(concurrent_requests=0)


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "crawler:\n"
        "  max_depth: 1\n"
        "  max_pages_per_domain: 10\n"
        "  delay_ms: 250\n"
        "storage:\n"
        "  backend: redis\n"
        "redis:\n"
        "  host: cache\n"
        "  key_prefix: test\n"
        "logging:\n"
        "  level: debug\n"
    )

    config = load_config(str(path))

    assert config.crawler.max_depth == 1
    assert config.crawler.max_pages_per_domain == 10
    assert config.crawler.delay_ms == 250
    assert config.crawler.concurrent_requests == 5
    assert config.storage.backend == "redis"
    assert config.redis.host == "cache"
    assert config.redis.port == 6379
    assert config.logging.level == "debug"
    assert config.monitoring.metrics_enabled is False


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert load_config(str(path)) == default_config()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("crawler:\n  max_depht: 2\n")

    with pytest.raises(ValueError, match="max_depht"):
        load_config(str(path))


def test_invalid_backend_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("storage:\n  backend: cassandra\n")

    with pytest.raises(ValueError, match="backend"):
        load_config(str(path))


def test_invalid_log_level_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: LOUD\n")

    with pytest.raises(ValueError, match="log level"):
        load_config(str(path))


def test_invalid_crawler_value_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("crawler:\n  concurrent_requests: 0\n")

    with pytest.raises(ValueError, match="concurrent_requests"):
        load_config(str(path))


@pytest.mark.parametrize("field_name, value", [
    ("max_depth", "3"),
    ("concurrent_requests", True),
    ("delay_ms", 2.5),
    ("request_timeout", "fast"),
    ("user_agent", 42),
])
def test_crawl_config_rejects_wrong_types(field_name, value):
    with pytest.raises(ValueError, match=field_name):
        CrawlConfig(**{field_name: value})


def test_wrong_type_in_file_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("crawler:\n  max_depth: three\n")

    with pytest.raises(ValueError, match="max_depth"):
        load_config(str(path))


def test_non_string_log_level_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: 10\n")

    with pytest.raises(ValueError, match="log level"):
        load_config(str(path))


def test_malformed_yaml_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("crawler: [unclosed\n")

    with pytest.raises(ValueError, match="Malformed YAML"):
        load_config(str(path))


def test_config_manager_requires_load():
    manager = ConfigManager("unused.yaml")

    with pytest.raises(ValueError, match="not loaded"):
        manager.config


def test_config_manager_exposes_loaded_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("monitoring:\n  metrics_enabled: true\n")
    manager = ConfigManager(str(path))

    loaded = manager.load_config()

    assert manager.config is loaded
    assert isinstance(loaded, Config)
    assert loaded.monitoring.metrics_enabled is True
