"""
Resource Fetcher
================

Downloads an image, classifies it from its leading bytes and writes it to the
storage directory as ``<title>.<ext>``.

The response body is streamed: the first bytes are held back for content
sniffing and then replayed ahead of the rest of the live body, so the image
is never buffered whole in memory.
"""

import errno
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

import magic
import requests

from ..config.settings import get_settings
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FetchError, ErrorCode

SNIFF_SIZE = 512


@dataclass
class StoredFile:
    """An image written to the storage directory."""

    path: Path
    title: str
    extension: str
    size_bytes: int
    content_type: str

    @property
    def name(self) -> str:
        return self.path.name


def detect_content_type(prefix: bytes) -> str:
    """Sniff a MIME type from magic bytes, ignoring any declared headers."""
    return magic.from_buffer(prefix, mime=True)


def extension_for(content_type: str) -> Optional[str]:
    """Map a sniffed content type to a storage extension.

    Returns:
        ``"jpg"`` or ``"png"``, or ``None`` for anything else
    """
    if "jpg" in content_type or "jpeg" in content_type:
        return "jpg"
    if "png" in content_type:
        return "png"
    return None


class PrefixedStream:
    """Chunk iterator that replays a sniffed prefix before the live body."""

    def __init__(self, chunks: Iterator[bytes], sniff_size: int = SNIFF_SIZE):
        self._chunks = iter(chunks)
        self.sniff_size = sniff_size
        self.prefix = b""
        self._overflow = b""
        self._prefix_read = False

    def read_prefix(self) -> bytes:
        """Pull chunks until ``sniff_size`` bytes are buffered or the body ends."""
        if self._prefix_read:
            return self.prefix

        buffer = bytearray()
        for chunk in self._chunks:
            if not chunk:
                continue
            buffer.extend(chunk)
            if len(buffer) >= self.sniff_size:
                break

        self.prefix = bytes(buffer[: self.sniff_size])
        self._overflow = bytes(buffer[self.sniff_size :])
        self._prefix_read = True
        return self.prefix

    def __iter__(self) -> Iterator[bytes]:
        if not self._prefix_read:
            self.read_prefix()
        if self.prefix:
            yield self.prefix
        if self._overflow:
            yield self._overflow
        for chunk in self._chunks:
            if chunk:
                yield chunk


class ResourceFetcher:
    """Fetch, classify and persist a single remote image."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
        chunk_size: Optional[int] = None,
        sniffer: Callable[[bytes], str] = detect_content_type,
    ):
        """Initialize resource fetcher.

        Args:
            session: Shared requests session (one is created if omitted)
            timeout: Request timeout in seconds (default from config)
            chunk_size: Streaming chunk size in bytes (default from config)
            sniffer: Content type detector applied to the body prefix
        """
        settings = get_settings()
        self.timeout = timeout or settings.limits.request_timeout
        self.chunk_size = chunk_size or settings.limits.chunk_size
        self.sniffer = sniffer
        self.logger = get_logger_for_component("fetcher")

        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": settings.user_agent})
        self.session = session

    def fetch(self, url: str, title: str, dest_dir: Union[str, Path]) -> StoredFile:
        """Download ``url`` into ``dest_dir/<title>.<ext>``.

        Args:
            url: Absolute image URL
            title: File stem; an empty title yields ``.<ext>``
            dest_dir: Storage directory

        Returns:
            The stored file

        Raises:
            FetchError: On transport failure, read failure, an unrecognized
                content type, a title that would place the file outside
                ``dest_dir``, or a failed write (the partial file is removed)
        """
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(
                f"Request failed: {e}", url=url, error_code=ErrorCode.RESOURCE_TRANSPORT
            ) from e

        with response:
            if not response.ok:
                # Left to content sniffing; error pages fail classification
                self.logger.debug(
                    f"HTTP {response.status_code} for {url}", extra={"title": title}
                )

            stream = PrefixedStream(
                response.iter_content(chunk_size=self.chunk_size), SNIFF_SIZE
            )
            try:
                prefix = stream.read_prefix()
            except requests.RequestException as e:
                raise FetchError(
                    f"Failed reading response body: {e}",
                    url=url,
                    error_code=ErrorCode.RESOURCE_READ,
                ) from e

            content_type = self.sniffer(prefix)
            extension = extension_for(content_type)
            if extension is None:
                self.logger.info(f"Unknown image type ({content_type}) for {url}")
                raise FetchError(
                    f"No extension for {url} (sniffed {content_type})",
                    url=url,
                    content_type=content_type,
                    error_code=ErrorCode.RESOURCE_UNKNOWN_TYPE,
                )

            destination = self._destination(dest_dir, title, extension, url)
            size = self._write(stream, destination, url)

        self.logger.info(
            f"Stored {destination.name} ({size} bytes, {content_type})",
            extra={"title": title, "url": url},
        )
        return StoredFile(
            path=destination,
            title=title,
            extension=extension,
            size_bytes=size,
            content_type=content_type,
        )

    @staticmethod
    def _destination(dest_dir: Union[str, Path], title: str, extension: str, url: str) -> Path:
        """Build ``dest_dir/<title>.<ext>``, refusing names that leave ``dest_dir``."""
        directory = Path(dest_dir)
        destination = directory / f"{title}.{extension}"
        # NUL is not a valid filename byte on any supported platform
        inside = "\x00" not in title and destination.resolve().parent == directory.resolve()
        if not inside:
            raise FetchError(
                f"Title {title!r} does not name a file inside {directory}",
                url=url,
                error_code=ErrorCode.RESOURCE_UNSAFE_NAME,
            )
        return destination

    def _write(self, stream: PrefixedStream, destination: Path, url: str) -> int:
        written = 0
        try:
            with open(destination, "wb") as handle:
                for chunk in stream:
                    handle.write(chunk)
                    written += len(chunk)
        except (OSError, requests.RequestException) as e:
            self._discard(destination)
            code = ErrorCode.RESOURCE_WRITE
            if isinstance(e, OSError) and e.errno == errno.ENOSPC:
                code = ErrorCode.SYSTEM_DISK_FULL
            raise FetchError(
                f"Failed writing {destination}: {e}",
                url=url,
                error_code=code,
            ) from e
        return written

    def _discard(self, destination: Path) -> None:
        try:
            destination.unlink(missing_ok=True)
        except OSError as e:
            self.logger.warning(f"Couldn't remove partial file {destination}: {e}")
