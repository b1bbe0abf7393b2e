"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for PixFeed tests.

Settings are driven through ``PIXFEED_*`` environment variables that are set
before any ``pixfeed`` import, so the settings singleton never touches the
working directory.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="pixfeed_tests_"))

os.environ["PIXFEED_STORAGE__DIRECTORY"] = str(_TEST_ROOT / "shared")
os.environ["PIXFEED_LOGGING__FILE_PATH"] = ""
os.environ["PIXFEED_DEBUG"] = "true"


# ============================================================================
# Payloads
# ============================================================================

JPEG_HEADER = (
    b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x01\x00H\x00H\x00\x00"
)
PNG_HEADER = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x10\x00\x00\x00\x10\x08\x06\x00\x00\x00"
    b"\x1f\xf3\xffa"
)
HTML_PAGE = (
    b"<!DOCTYPE html>\n<html>\n<head><title>Not found</title></head>\n"
    b"<body><h1>404 Not Found</h1><p>The requested image does not exist.</p>"
    b"</body>\n</html>\n"
)


def _padded(header: bytes, size: int) -> bytes:
    filler = bytes(i % 251 for i in range(size - len(header)))
    return header + filler


@pytest.fixture
def jpeg_bytes():
    """A JPEG-signed payload comfortably larger than the sniff window."""
    return _padded(JPEG_HEADER, 5000)


@pytest.fixture
def png_bytes():
    return _padded(PNG_HEADER, 3000)


@pytest.fixture
def html_bytes():
    return HTML_PAGE


# ============================================================================
# HTTP doubles
# ============================================================================


class FakeResponse:
    """Minimal stand-in for a streamed ``requests.Response``."""

    def __init__(self, body: bytes, status_code: int = 200, fail_after: int = None,
                 error: Exception = None):
        self.body = body
        self.status_code = status_code
        self.fail_after = fail_after
        self.error = error
        self.closed = False
        self.headers = {}

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def iter_content(self, chunk_size=1):
        sent = 0
        for start in range(0, len(self.body), chunk_size):
            if self.fail_after is not None and sent >= self.fail_after:
                raise self.error
            chunk = self.body[start:start + chunk_size]
            sent += len(chunk)
            yield chunk
        if self.fail_after is not None and sent >= self.fail_after:
            raise self.error

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


@pytest.fixture
def fake_response():
    """Factory for FakeResponse objects."""
    return FakeResponse


# ============================================================================
# Storage and markup fixtures
# ============================================================================


@pytest.fixture
def storage_dir(tmp_path):
    """Empty storage directory for a single test."""
    path = tmp_path / "shared"
    path.mkdir()
    return path


def build_fragment(title="Sunset over the ridge [4000x3000]",
                   links=("http://example.com/photo.jpg",),
                   with_tbody=False):
    """Render a reddit-style entry table.

    ``title=None`` omits the thumbnail cell entirely.
    """
    thumb = ""
    if title is not None:
        thumb = (
            '<td><a href="http://www.reddit.com/r/earthporn/comments/abc/">'
            f'<img src="http://thumbs.example.com/abc.jpg" alt="{title}" title="{title}" />'
            '</a></td>'
        )
    anchors = " ".join(f'<a href="{href}">[link]</a>' for href in links)
    cells = (
        f"{thumb}<td> submitted by <a href=\"http://www.reddit.com/user/someone\"> someone </a> <br/> "
        f"{anchors} "
        '<a href="http://www.reddit.com/r/earthporn/comments/abc/">[comments]</a></td>'
    )
    rows = f"<tr>{cells}</tr>"
    if with_tbody:
        rows = f"<tbody>{rows}</tbody>"
    return f"<table> {rows} </table>"


@pytest.fixture
def fragment_builder():
    return build_fragment
