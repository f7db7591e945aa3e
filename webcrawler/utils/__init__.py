"""
Utility modules for the web crawler.
"""

from .config import Config, CrawlConfig, ConfigManager, load_config, default_config

__all__ = ['Config', 'CrawlConfig', 'ConfigManager', 'load_config', 'default_config']
