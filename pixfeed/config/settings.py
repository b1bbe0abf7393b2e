"""
PixFeed Configuration System
============================

Configuration management with environment variables and Pydantic models.
Environment variables (``PIXFEED_`` prefix, ``__`` for nested sections)
override Field defaults.
"""

import os
from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FeedSettings(BaseModel):
    """Feed source and polling cadence."""
    url: str = Field(default="http://reddit.com/r/earthporn.rss", description="Feed to poll")
    poll_interval_seconds: int = Field(default=3600, ge=1, description="Seconds between cycles")
    user_agent: str = Field(default="PixFeed/1.0", description="User-Agent sent with every request")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Require an absolute http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("feed url must start with http:// or https://")
        return v


class StorageSettings(BaseModel):
    """Image storage directory and retention cap."""
    directory: str = Field(default="shared", description="Flat directory images are written to")
    max_total_bytes: int = Field(default=1 << 26, ge=1, description="Retention cap in bytes (~67 MiB)")


class LimitsSettings(BaseModel):
    """Network limits."""
    request_timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")
    chunk_size: int = Field(default=8192, ge=512, description="Streaming chunk size in bytes")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/pixfeed.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class PixFeedSettings(BaseSettings):
    """Main application settings."""

    feed: FeedSettings = Field(default_factory=FeedSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="PixFeed", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "PIXFEED_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration, creating directories as needed."""
        errors = []

        try:
            storage_path = Path(self.storage.directory)
            storage_path.mkdir(parents=True, exist_ok=True)
            if not os.access(storage_path, os.W_OK):
                errors.append(f"Storage directory is not writable: {storage_path}")
        except OSError as e:
            errors.append(f"Invalid storage directory: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value

    @property
    def user_agent(self) -> str:
        return f"{self.feed.user_agent} ({self.app_name}/{self.version})"


def load_settings() -> PixFeedSettings:
    """Load settings from environment variables, .env and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = PixFeedSettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        )


_settings: Optional[PixFeedSettings] = None


def get_settings(reload: bool = False) -> PixFeedSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
