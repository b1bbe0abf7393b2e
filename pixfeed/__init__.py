"""
PixFeed - Feed Image Collector
==============================

Polls a feed, downloads the image each entry links to, and keeps the image
directory under a size cap.

Main Components:
- Ingestion: feed fetching (feedparser) and markup extraction (BeautifulSoup)
- Storage: sniffed image downloads and size-capped retention sweeps
- Scheduler: the per-poll run cycle and the fixed-interval polling loop
- Configuration: environment variables with Pydantic validation
"""

__version__ = "1.0.0"
__author__ = "PixFeed Development Team"
__description__ = "Feed image collector with size-capped retention"

from .config.settings import get_settings
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import PixFeedError

__all__ = [
    "get_settings",
    "configure_application_logging",
    "get_logger_for_component",
    "PixFeedError",
]
