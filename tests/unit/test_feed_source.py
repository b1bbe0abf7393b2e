"""
Unit Tests for Feed Source
==========================

Feed fetching, parsing and refresh behaviour with a mocked HTTP session.
"""

from unittest.mock import Mock

import pytest
import requests

from pixfeed.ingestion.feed_source import FeedSource, FeedEntry
from pixfeed.utils.exceptions import FeedFetchError, ErrorCode

FEED_URL = "http://reddit.com/r/earthporn.rss"

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>EarthPorn</title>
    <link>http://www.reddit.com/r/EarthPorn/</link>
    <description>Pictures of the earth</description>
    <item>
      <title>Misty valley [4000x3000]</title>
      <link>http://www.reddit.com/r/EarthPorn/comments/abc/</link>
      <description>&lt;table&gt;&lt;tr&gt;&lt;td&gt;&lt;a href="http://example.com/a.jpg"&gt;[link]&lt;/a&gt;&lt;/td&gt;&lt;/tr&gt;&lt;/table&gt;</description>
    </item>
    <item>
      <title>Red canyon</title>
      <link>http://www.reddit.com/r/EarthPorn/comments/def/</link>
      <description>&lt;table&gt;&lt;tr&gt;&lt;td&gt;no link&lt;/td&gt;&lt;/tr&gt;&lt;/table&gt;</description>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>EarthPorn</title>
  <id>urn:example:feed</id>
  <updated>2024-01-01T00:00:00Z</updated>
  <entry>
    <title>Glacier</title>
    <id>urn:example:1</id>
    <updated>2024-01-01T00:00:00Z</updated>
    <link href="http://www.reddit.com/r/EarthPorn/comments/ghi/"/>
    <content type="html">&lt;table&gt;&lt;tr&gt;&lt;td&gt;glacier&lt;/td&gt;&lt;/tr&gt;&lt;/table&gt;</content>
  </entry>
</feed>
"""


def make_source(content=None, side_effect=None, raise_for_status=None):
    session = Mock(spec=requests.Session)
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        response = Mock()
        response.content = content
        response.headers = {"content-type": "application/xml"}
        if raise_for_status is not None:
            response.raise_for_status.side_effect = raise_for_status
        session.get.return_value = response
    return FeedSource(url=FEED_URL, session=session, timeout=7), session


class TestFeedSource:
    """Test cases for FeedSource.fetch and refresh."""

    def test_parses_rss_entries(self):
        source, session = make_source(RSS_FEED)

        entries = source.fetch()

        assert len(entries) == 2
        assert all(isinstance(e, FeedEntry) for e in entries)
        assert entries[0].link == "http://www.reddit.com/r/EarthPorn/comments/abc/"
        assert entries[0].title == "Misty valley [4000x3000]"
        assert "http://example.com/a.jpg" in entries[0].content
        assert source.entries == entries
        assert source.last_fetched is not None
        session.get.assert_called_once_with(FEED_URL, timeout=7)

    def test_atom_content_is_preferred(self):
        source, _ = make_source(ATOM_FEED)

        entries = source.fetch()

        assert len(entries) == 1
        assert "glacier" in entries[0].content
        assert "<table>" in entries[0].content
        assert entries[0].link == "http://www.reddit.com/r/EarthPorn/comments/ghi/"

    def test_timeout(self):
        source, _ = make_source(side_effect=requests.Timeout("slow"))

        with pytest.raises(FeedFetchError) as exc_info:
            source.fetch()

        assert exc_info.value.error_code == ErrorCode.FEED_FETCH_TIMEOUT
        assert exc_info.value.context["feed_url"] == FEED_URL

    def test_connection_error(self):
        source, _ = make_source(side_effect=requests.ConnectionError("refused"))

        with pytest.raises(FeedFetchError) as exc_info:
            source.fetch()

        assert exc_info.value.error_code == ErrorCode.FEED_NETWORK_ERROR

    @pytest.mark.parametrize(
        "status,code",
        [(404, ErrorCode.FEED_NOT_FOUND), (403, ErrorCode.FEED_ACCESS_DENIED)],
    )
    def test_http_error_status(self, status, code):
        error = requests.HTTPError(response=Mock(status_code=status))
        source, _ = make_source(RSS_FEED, raise_for_status=error)

        with pytest.raises(FeedFetchError) as exc_info:
            source.fetch()

        assert exc_info.value.error_code == code

    def test_unparsable_feed(self):
        source, _ = make_source(b"<html><body>definitely not a feed")

        with pytest.raises(FeedFetchError) as exc_info:
            source.fetch()

        assert exc_info.value.error_code == ErrorCode.FEED_PARSE_ERROR

    def test_refresh_replaces_entries(self):
        source, session = make_source(RSS_FEED)
        source.fetch()

        session.get.return_value.content = ATOM_FEED

        assert source.refresh() is True
        assert [e.link for e in source.entries] == [
            "http://www.reddit.com/r/EarthPorn/comments/ghi/"
        ]

    def test_refresh_failure_keeps_previous_entries(self):
        source, session = make_source(RSS_FEED)
        previous = source.fetch()

        session.get.side_effect = requests.ConnectionError("offline")

        assert source.refresh() is False
        assert source.entries == previous
