"""
Unit Tests for Error Handling
=============================
"""

import logging

import pytest

from pixfeed.utils.exceptions import (
    PixFeedError,
    ErrorCode,
    ConfigurationError,
    FeedFetchError,
    ExtractionError,
    FetchError,
    SweepListError,
    DeleteError,
    handle_exception,
    get_user_friendly_message,
)


class TestPixFeedError:
    """Base exception behaviour."""

    def test_str_includes_code(self):
        error = PixFeedError("boom", error_code=ErrorCode.RESOURCE_READ)

        assert str(error) == "[R002] boom"

    def test_str_without_code(self):
        assert str(PixFeedError("boom")) == "boom"

    def test_to_dict(self):
        error = FetchError(
            "No extension", url="http://example.com/x", content_type="text/html",
            error_code=ErrorCode.RESOURCE_UNKNOWN_TYPE,
        )

        data = error.to_dict()

        assert data["error_type"] == "FetchError"
        assert data["error_code"] == "R003"
        assert data["context"] == {"url": "http://example.com/x", "content_type": "text/html"}
        assert data["recoverable"] is True


class TestSubclasses:
    """Default codes and context keys."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (ConfigurationError("bad"), ErrorCode.CONFIG_INVALID),
            (FeedFetchError("down"), ErrorCode.FEED_NETWORK_ERROR),
            (ExtractionError("bad markup"), ErrorCode.EXTRACTION_PARSE_ERROR),
            (FetchError("reset"), ErrorCode.RESOURCE_TRANSPORT),
            (SweepListError("gone"), ErrorCode.STORAGE_LIST_FAILED),
            (DeleteError("busy"), ErrorCode.STORAGE_DELETE_FAILED),
        ],
    )
    def test_default_codes(self, error, code):
        assert error.error_code == code
        assert isinstance(error, PixFeedError)

    def test_context_keys(self):
        assert ConfigurationError("x", config_key="feed.url").context == {"config_key": "feed.url"}
        assert FeedFetchError("x", feed_url="http://f").context == {"feed_url": "http://f"}
        assert ExtractionError("x", link="http://l").context == {"link": "http://l"}
        assert DeleteError("x", path="/tmp/a.jpg").context == {"path": "/tmp/a.jpg"}

    def test_fetch_error_content_type(self):
        assert FetchError("x").content_type is None
        assert FetchError("x", content_type="image/gif").content_type == "image/gif"


class TestHandleException:
    """Conversion of arbitrary exceptions."""

    def setup_method(self):
        self.logger = logging.getLogger("pixfeed.tests")

    def test_pixfeed_error_passes_through(self):
        original = ExtractionError("bad")

        assert handle_exception(original, self.logger, "extract") is original

    def test_permission_error(self):
        error = handle_exception(PermissionError("nope"), self.logger, "fetch")

        assert error.error_code == ErrorCode.SYSTEM_PERMISSION_DENIED
        assert error.context["operation"] == "fetch"
        assert error.context["original_exception_type"] == "PermissionError"

    def test_unexpected_error_is_logged(self, caplog):
        with caplog.at_level(logging.ERROR, logger="pixfeed"):
            error = handle_exception(RuntimeError("boom"), self.logger, "sweep", {"path": "/x"})

        assert "Unexpected error during sweep" in str(error)
        assert error.context["path"] == "/x"
        assert "Operation 'sweep' failed" in caplog.text


def test_user_friendly_message():
    assert get_user_friendly_message(FetchError("reset")) == "Couldn't store image"
    assert "unexpected" in get_user_friendly_message(ValueError("x"))
