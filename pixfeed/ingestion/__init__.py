"""
PixFeed Ingestion Module
========================

Feed retrieval and markup extraction.

This module handles:
- Fetching and refreshing the polled feed
- Locating the image title and ``[link]`` target in each entry's markup
"""

from .feed_source import FeedEntry, FeedSource
from .markup_extractor import ExtractedTarget, MarkupExtractor

__all__ = [
    "FeedEntry",
    "FeedSource",
    "ExtractedTarget",
    "MarkupExtractor",
]
