"""
PixFeed Storage Layer
=====================

Everything that touches the image directory.

This module provides:
- Image download with content sniffing (ResourceFetcher)
- Size-capped retention sweeps (RetentionSweeper)
"""

from .resource_fetcher import ResourceFetcher, StoredFile, PrefixedStream
from .retention import RetentionSweeper, DirectoryEntry, SweepResult

__all__ = [
    "ResourceFetcher",
    "StoredFile",
    "PrefixedStream",
    "RetentionSweeper",
    "DirectoryEntry",
    "SweepResult",
]
