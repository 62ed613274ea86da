"""Configuration models and loaders."""

from .config import (
    DEFAULT_USER_AGENT,
    CacheConfig,
    CrawlConfig,
    MonitoringConfig,
    Settings,
    load_settings,
)

__all__ = [
    "DEFAULT_USER_AGENT",
    "CacheConfig",
    "CrawlConfig",
    "MonitoringConfig",
    "Settings",
    "load_settings",
]
