"""
Configuration management for the web crawler.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields, replace

from .. import __version__

DEFAULT_USER_AGENT = f"webcrawler/{__version__}"


@dataclass(frozen=True)
class CrawlConfig:
    """Immutable settings for one crawl run."""
    max_depth: int = 3
    max_pages_per_domain: int = 100
    concurrent_requests: int = 5
    delay_ms: int = 1000
    user_agent: str = DEFAULT_USER_AGENT
    # Reserved; robots.txt is not enforced
    respect_robots_txt: bool = True
    request_timeout: float = 10.0

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Validate configuration values."""
        for name in ('max_depth', 'max_pages_per_domain', 'concurrent_requests', 'delay_ms'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")

        if isinstance(self.request_timeout, bool) or not isinstance(self.request_timeout, (int, float)):
            raise ValueError(f"request_timeout must be a number, got {self.request_timeout!r}")

        if not isinstance(self.user_agent, str):
            raise ValueError(f"user_agent must be a string, got {self.user_agent!r}")

        if self.max_depth < 0:
            raise ValueError("max_depth must be non-negative")

        if self.max_pages_per_domain < 1:
            raise ValueError("max_pages_per_domain must be at least 1")

        if self.concurrent_requests < 1:
            raise ValueError("concurrent_requests must be at least 1")

        if self.delay_ms < 0:
            raise ValueError("delay_ms must be non-negative")

        if not self.user_agent:
            raise ValueError("user_agent must not be empty")

        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    def with_overrides(self, **overrides) -> 'CrawlConfig':
        """Return a copy with the non-None overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


@dataclass
class StorageConfig:
    """Configuration for the frontier store."""
    backend: str = "memory"


@dataclass
class RedisConfig:
    """Configuration for Redis."""
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    key_prefix: str = "crawler"
    keep_state: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlConfig = field(default_factory=CrawlConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _build_section(section_cls, data: Optional[Dict[str, Any]], name: str):
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{name}' section: {', '.join(sorted(unknown))}")

    try:
        return section_cls(**data)
    except TypeError as e:
        raise ValueError(f"Invalid value in '{name}' section: {e}") from e


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed YAML in {self.config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {self.config_path}")

        self._config = Config(
            crawler=_build_section(CrawlConfig, config_data.get('crawler'), 'crawler'),
            storage=_build_section(StorageConfig, config_data.get('storage'), 'storage'),
            redis=_build_section(RedisConfig, config_data.get('redis'), 'redis'),
            logging=_build_section(LoggingConfig, config_data.get('logging'), 'logging'),
            monitoring=_build_section(MonitoringConfig, config_data.get('monitoring'), 'monitoring')
        )

        self._validate_config()
        return self._config

    def _validate_config(self):
        """Validate cross-section configuration values."""
        if not self._config:
            raise ValueError("Configuration not loaded")

        if self._config.storage.backend not in ['memory', 'redis']:
            raise ValueError("Storage backend must be 'memory' or 'redis'")

        level = self._config.logging.level
        if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
            raise ValueError(f"Unknown log level: {self._config.logging.level}")

        logging.getLogger(__name__).debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def default_config() -> Config:
    """Build a configuration with every section at its defaults."""
    return Config()


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    return ConfigManager(config_path).load_config()
