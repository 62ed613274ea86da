"""
Configuration management for SiteSift using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "SiteSift/0.1 (+https://github.com/sitesift/sitesift)"

# --- Nested Configuration Models ---


class CrawlConfig(BaseModel):
    """Per-call crawl options. Immutable; derive variants with ``merged``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds.")
    max_redirects: int = Field(default=5, ge=0, description="Redirect budget per request.")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent string for HTTP requests.")
    respect_robots: bool = Field(default=True, description="Whether to respect robots.txt.")
    delay_ms: int = Field(default=0, ge=0, description="Politeness delay before every fetch.")
    retries: int = Field(default=3, ge=1, description="Total attempts per URL on transport failure.")
    cache_enabled: bool = Field(default=False, description="Serve and store fetches in the response cache.")
    concurrency: int = Field(default=1, ge=1, description="Window size for batch fetches.")
    batch_delay_ms: int = Field(default=0, ge=0, description="Pause between batch windows.")
    max_depth: int = Field(default=2, ge=0, description="Maximum link distance from the discovery seed.")
    max_urls: int = Field(default=100, ge=0, description="Maximum number of URLs discovered per run.")
    url_pattern: Optional[str] = Field(default=None, description="Glob filter for discovered URLs.")
    encoding: str = Field(default="utf-8", description="Fallback character encoding.")
    robots_timeout: float = Field(default=5.0, gt=0, description="Timeout for robots.txt requests.")

    def merged(self, **overrides: Any) -> CrawlConfig:
        """
        Return a new config with ``overrides`` applied field by field.

        Overrides that are ``None`` leave the field untouched, so call sites
        can forward optional arguments unconditionally.
        """
        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return self
        return CrawlConfig.model_validate({**self.model_dump(), **updates})


class CacheConfig(BaseModel):
    """Configuration for the in-memory response cache."""

    ttl_seconds: float = Field(default=3600.0, gt=0, description="Lifetime of a cached fetch.")
    max_entries: Optional[int] = Field(default=None, ge=1, description="Optional cap on cached URLs.")


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: Optional[str] = Field(default=None, description="Path to log file. If None, logs to console.")
    prometheus_port: Optional[int] = Field(default=None, description="Port for the metrics exporter.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Settings(BaseSettings):
    project_name: str = "SiteSift"
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="SITESIFT_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Settings:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from ``path`` if given, else from the environment only."""
    if path is not None:
        return Settings.from_yaml(path)
    return Settings()
