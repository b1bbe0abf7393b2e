"""
Markup Extractor
================

Pulls the image title and the ``[link]`` target out of a feed entry's HTML
fragment.

Reddit-style entries render a small table: one cell holds an anchor wrapping
a thumbnail whose ``title`` attribute is the post title, and another cell
holds the ``[link]`` anchor pointing at the full-size image.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ExtractionError, ErrorCode

LINK_MARKER = "[link]"

# Hosts that serve bare asset ids; the direct image lives at <id>.jpg
EXTENSIONLESS_HOSTS = {"imgur.com": ".jpg"}


@dataclass
class ExtractedTarget:
    """Title and resource URL found in a fragment.

    ``None`` means the field was not found; an empty string is a title that
    was present but empty.
    """

    title: Optional[str] = None
    resource_url: Optional[str] = None

    @property
    def has_title(self) -> bool:
        return self.title is not None

    @property
    def has_resource(self) -> bool:
        return self.resource_url is not None


class MarkupExtractor:
    """Locates the titled thumbnail and the ``[link]`` anchor in a fragment."""

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser
        self.logger = get_logger_for_component("extractor")

    def extract(self, fragment: str, link: Optional[str] = None) -> ExtractedTarget:
        """Extract the title and resource URL from a markup fragment.

        Args:
            fragment: HTML snippet from the feed entry
            link: Entry link, used only for diagnostics

        Returns:
            ExtractedTarget; fields not found are ``None``

        Raises:
            ExtractionError: If the fragment cannot be parsed or has no
                table rows to walk
        """
        if fragment is None:
            raise ExtractionError("Entry has no markup content", link=link)

        try:
            soup = BeautifulSoup(fragment, self.parser)
        except Exception as e:
            raise ExtractionError(f"Unparsable markup: {e}", link=link) from e

        rows = self._result_rows(soup)
        if not rows:
            raise ExtractionError(
                "No results table found in markup",
                link=link,
                error_code=ErrorCode.EXTRACTION_NO_STRUCTURE,
            )

        target = ExtractedTarget()
        for row in rows:
            for cell in row.find_all(True, recursive=False):
                title = self._thumbnail_title(cell)
                if title is not None:
                    target.title = title

                # Every [link] anchor overwrites the previous one
                for anchor in cell.find_all("a", href=True, recursive=False):
                    if anchor.get_text() != LINK_MARKER:
                        continue
                    resolved = self.resolve_url(anchor["href"])
                    if resolved is None:
                        self.logger.debug(
                            f"Ignoring unusable [link] href {anchor['href']!r}",
                            extra={"link": link},
                        )
                        continue
                    target.resource_url = resolved

        return target

    def _result_rows(self, soup: BeautifulSoup) -> list:
        table = soup.find("table")
        if table is None:
            return []

        # html.parser keeps the tree as written, so <tbody> may be absent
        body = table.find("tbody", recursive=False) or table
        return body.find_all("tr", recursive=False)

    @staticmethod
    def _thumbnail_title(cell: Tag) -> Optional[str]:
        anchor = cell.find("a", href=True)
        if anchor is None:
            return None
        img = anchor.find("img")
        if img is None:
            return None
        return img.get("title")

    @staticmethod
    def resolve_url(href: str) -> Optional[str]:
        """Validate an href and apply host-specific rewrites.

        Returns:
            Absolute URL, or ``None`` if the href is not an absolute URL
        """
        try:
            parsed = urlparse(href)
            port = parsed.port
        except ValueError:
            return None

        if not parsed.scheme or not parsed.hostname:
            return None

        # hostname is lowercased and stripped of userinfo
        suffix = EXTENSIONLESS_HOSTS.get(parsed.hostname)
        if suffix and port is None:
            return href + suffix
        return href
