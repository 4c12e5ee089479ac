"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, crawler_home, parse_crawl_input
from .models import (
    DEFAULT_BASE_URL,
    CrawlInput,
    GlobalConfig,
    ProxyConfiguration,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "CrawlInput",
    "DEFAULT_BASE_URL",
    "GlobalConfig",
    "ProxyConfiguration",
    "crawler_home",
    "parse_crawl_input",
]
