"""
Feed Source
===========

Fetches the polled feed with requests and parses it with feedparser into
plain ``FeedEntry`` records carrying the markup fragment and entry link.
"""

import time
from dataclasses import dataclass
from typing import Any, List, Optional

import feedparser
import requests

from ..config.settings import get_settings
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FeedFetchError, ErrorCode


@dataclass
class FeedEntry:
    """One feed item as seen by the run cycle."""

    content: str
    link: str
    title: Optional[str] = None


class FeedSource:
    """Single-feed source with fetch and refresh."""

    def __init__(
        self,
        url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
    ):
        """Initialize feed source.

        Args:
            url: Feed URL (default from config)
            session: Shared requests session (one is created if omitted)
            timeout: Request timeout in seconds (default from config)
        """
        settings = get_settings()
        self.url = url or settings.feed.url
        self.timeout = timeout or settings.limits.request_timeout
        self.logger = get_logger_for_component("feed_source")

        if session is None:
            session = requests.Session()
            session.headers.update(
                {
                    "User-Agent": settings.user_agent,
                    "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml",
                }
            )
        self.session = session

        self.entries: List[FeedEntry] = []
        self.last_fetched: Optional[float] = None

    def fetch(self) -> List[FeedEntry]:
        """Fetch and parse the feed, replacing the current entries.

        Returns:
            Parsed feed entries

        Raises:
            FeedFetchError: On transport failure or an unparsable feed
        """
        self.logger.info(f"Fetching feed: {self.url}")
        start_time = time.time()

        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as e:
            raise FeedFetchError(
                f"Feed request timed out after {self.timeout}s",
                feed_url=self.url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            code = ErrorCode.FEED_NOT_FOUND if status == 404 else ErrorCode.FEED_ACCESS_DENIED
            raise FeedFetchError(
                f"Feed returned HTTP {status}", feed_url=self.url, error_code=code
            ) from e
        except requests.RequestException as e:
            raise FeedFetchError(
                f"Failed to fetch feed: {e}",
                feed_url=self.url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

        parsed = feedparser.parse(
            response.content, response_headers=dict(response.headers)
        )

        if parsed.bozo:
            if not parsed.entries:
                raise FeedFetchError(
                    f"Feed parse error: {parsed.get('bozo_exception', 'invalid XML')}",
                    feed_url=self.url,
                    error_code=ErrorCode.FEED_PARSE_ERROR,
                )
            # Many feeds have minor formatting issues
            self.logger.warning(
                f"Feed parsing warning for {self.url}: {parsed.get('bozo_exception')}"
            )

        entries = []
        for raw in parsed.entries:
            entry = self._to_entry(raw)
            if entry is None:
                self.logger.debug(
                    f"Entry without markup skipped: {raw.get('link', 'unknown')}"
                )
                continue
            entries.append(entry)

        self.entries = entries
        self.last_fetched = time.time()
        self.logger.info(
            f"Parsed {len(entries)} entries from {self.url} "
            f"in {self.last_fetched - start_time:.2f}s"
        )
        return entries

    def refresh(self) -> bool:
        """Re-fetch the feed, keeping the previous entries on failure.

        Returns:
            True if the feed was refreshed
        """
        try:
            self.fetch()
            return True
        except FeedFetchError as e:
            self.logger.warning(
                f"Feed refresh failed, reusing {len(self.entries)} previous entries: {e}",
                extra=e.to_dict(),
            )
            return False

    @staticmethod
    def _to_entry(raw: Any) -> Optional[FeedEntry]:
        content = None

        blocks = raw.get("content")
        if blocks:
            content = blocks[0].get("value")
        if not content:
            content = raw.get("summary") or raw.get("description")
        if not content:
            return None

        return FeedEntry(
            content=content,
            link=raw.get("link", ""),
            title=raw.get("title"),
        )
