"""Tests for feed retrieval, parsing and normalization."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from news_feed.errors import FetchError
from news_feed.models import Source, SourceType
from news_feed.retrieval import FeedKind, ParsedFeed, fetch_bytes, fetch_json, parse_feed
from news_feed.rss_feed import (
    _extract_author,
    _extract_summary,
    _iso_to_epoch,
    fetch_feed_items,
    normalize_feed,
)

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>AI News</title>
    <link>https://news.example.com</link>
    <description>Test feed</description>
    <item>
      <title>New model tops MMLU</title>
      <link>https://news.example.com/mmlu</link>
      <description>&lt;p&gt;A &lt;b&gt;new&lt;/b&gt; model.&lt;/p&gt;</description>
      <author>jane@example.com (Jane Doe)</author>
      <pubDate>Mon, 06 Jan 2025 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Robotics startup raises funds</title>
      <link>https://news.example.com/robotics</link>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Lab Blog</title>
  <id>urn:uuid:lab-blog</id>
  <updated>2025-01-06T10:00:00Z</updated>
  <entry>
    <title>Scaling laws revisited</title>
    <link href="https://lab.example.com/scaling"/>
    <id>urn:uuid:1</id>
    <updated>2025-01-06T10:00:00Z</updated>
    <author><name>Alice</name></author>
    <summary>We revisit scaling laws.</summary>
  </entry>
</feed>
"""


def _json_feed(items):
    return json.dumps({
        "version": "https://jsonfeed.org/version/1.1",
        "title": "JSON News",
        "items": items,
    })


def _rss_with_items(items_xml: str) -> str:
    return f"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>T</title><link>https://t.com</link>
<description>d</description>{items_xml}</channel></rss>"""


class TestParseFeed:
    """Tests for feed format detection."""

    def test_rss(self):
        feed = parse_feed(RSS_FEED)
        assert feed.kind == FeedKind.RSS
        assert feed.title == "AI News"
        assert len(feed.entries) == 2

    def test_atom(self):
        feed = parse_feed(ATOM_FEED)
        assert feed.kind == FeedKind.ATOM
        assert len(feed.entries) == 1

    def test_json_feed(self):
        feed = parse_feed(_json_feed([{"id": "1", "title": "T", "url": "https://j.com/1"}]))
        assert feed.kind == FeedKind.JSON
        assert feed.title == "JSON News"
        assert feed.entries[0]["url"] == "https://j.com/1"

    def test_malformed_json_raises(self):
        with pytest.raises(FetchError):
            parse_feed("{not json")

    def test_not_a_feed_raises(self):
        with pytest.raises(FetchError):
            parse_feed("just some text, no markup at all")


class TestNormalizeFeed:
    """Tests for normalize_feed."""

    def test_rss_fields(self):
        items = normalize_feed(parse_feed(RSS_FEED))

        assert [item.url for item in items] == [
            "https://news.example.com/mmlu",
            "https://news.example.com/robotics",
        ]
        first = items[0]
        assert first.title == "New model tops MMLU"
        assert "new" in first.summary and "<b>" not in first.summary
        assert first.published_at == 1736157600
        assert first.author is not None
        assert items[1].summary is None

    def test_atom_fields(self):
        items = normalize_feed(parse_feed(ATOM_FEED))

        assert len(items) == 1
        assert items[0].url == "https://lab.example.com/scaling"
        assert items[0].author == "Alice"
        assert items[0].published_at == 1736157600

    def test_json_fields(self):
        feed = parse_feed(_json_feed([{
            "id": "1",
            "title": "JSON item",
            "url": "https://j.com/1",
            "content_text": "Body text",
            "date_published": "2025-01-06T10:00:00Z",
            "authors": [{"name": "Bob"}],
        }]))

        items = normalize_feed(feed)
        assert items[0].title == "JSON item"
        assert items[0].summary == "Body text"
        assert items[0].published_at == 1736157600
        assert items[0].author == "Bob"

    def test_json_items_with_malformed_fields_are_skipped(self):
        feed = parse_feed(_json_feed([
            {"id": "1", "title": 42, "url": "https://j.com/numeric-title"},
            {"id": "2", "title": "Numeric link", "url": 7},
            {"id": "3", "title": "Good item", "url": "https://j.com/ok", "date_published": 20250106},
        ]))

        items = normalize_feed(feed)
        assert [item.url for item in items] == ["https://j.com/ok"]
        assert items[0].published_at is None

    def test_json_feed_as_bytes(self):
        document = _json_feed([{"id": "1", "title": "Café update", "url": "https://j.com/1"}]).encode("utf-8")

        items = normalize_feed(parse_feed(document))
        assert items[0].title == "Café update"

    def test_skips_entries_without_title_or_link(self):
        feed = parse_feed(_rss_with_items("""
<item><title>No link here</title></item>
<item><link>https://t.com/untitled</link></item>
<item><title>Complete</title><link>https://t.com/ok</link></item>
"""))

        items = normalize_feed(feed)
        assert [item.title for item in items] == ["Complete"]

    def test_duplicate_links_within_feed(self):
        feed = parse_feed(_rss_with_items("""
<item><title>First</title><link>https://t.com/same</link></item>
<item><title>Second</title><link>https://t.com/same</link></item>
"""))

        items = normalize_feed(feed)
        assert len(items) == 1
        assert items[0].title == "First"

    def test_caps_items(self):
        items_xml = "".join(
            f"<item><title>Item {i}</title><link>https://t.com/{i}</link></item>" for i in range(30)
        )

        items = normalize_feed(parse_feed(_rss_with_items(items_xml)))
        assert len(items) == 20

    def test_custom_cap(self):
        feed = ParsedFeed(kind=FeedKind.JSON, entries=[
            {"title": f"T{i}", "url": f"https://j.com/{i}"} for i in range(5)
        ])
        assert len(normalize_feed(feed, max_items=3)) == 3


class TestExtractHelpers:
    """Tests for field extraction helpers."""

    def test_author_from_list(self):
        assert _extract_author({"authors": [{"name": " Alice "}, {"name": "Bob"}]}) == "Alice"

    def test_author_from_string(self):
        assert _extract_author({"author": "Carol"}) == "Carol"

    def test_author_missing(self):
        assert _extract_author({}) is None

    def test_summary_strips_html(self):
        summary = _extract_summary({"summary": "<p>Hello <em>world</em></p>"})
        assert "<p>" not in summary
        assert "Hello" in summary

    def test_summary_missing(self):
        assert _extract_summary({}) is None

    def test_iso_dates(self):
        assert _iso_to_epoch("2025-01-06T10:00:00Z") == 1736157600
        assert _iso_to_epoch("2025-01-06T11:00:00+01:00") == 1736157600
        assert _iso_to_epoch("not a date") is None
        assert _iso_to_epoch(None) is None


class TestFetching:
    """Tests for HTTP retrieval with a mocked session."""

    @patch("news_feed.retrieval.requests.get")
    def test_fetch_bytes(self, mock_get):
        mock_get.return_value = MagicMock(status_code=200, content=b"body")

        assert fetch_bytes("https://example.com") == b"body"
        headers = mock_get.call_args.kwargs["headers"]
        assert "User-Agent" in headers

    @patch("news_feed.retrieval.requests.get")
    def test_http_error_raises(self, mock_get):
        mock_get.return_value = MagicMock(status_code=503, content=b"")

        with pytest.raises(FetchError, match="503"):
            fetch_bytes("https://example.com")

    @patch("news_feed.retrieval.requests.get")
    def test_network_error_raises(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(FetchError):
            fetch_bytes("https://example.com")

    @patch("news_feed.retrieval.requests.get")
    def test_fetch_json(self, mock_get):
        mock_get.return_value = MagicMock(status_code=200, content='{"name": "Zürich"}'.encode("utf-8"))

        assert fetch_json("https://example.com/api") == {"name": "Zürich"}

    @patch("news_feed.retrieval.requests.get")
    def test_fetch_json_rejects_non_object(self, mock_get):
        mock_get.return_value = MagicMock(status_code=200, content=b"[1, 2]")

        with pytest.raises(FetchError):
            fetch_json("https://example.com/api")

    @patch("news_feed.rss_feed.fetch_bytes")
    def test_fetch_feed_items_prefers_feed_url(self, mock_fetch):
        mock_fetch.return_value = RSS_FEED.encode("utf-8")
        source = Source(
            name="AI News",
            source_type=SourceType.FEED,
            url="https://news.example.com",
            feed_url="https://news.example.com/rss",
        )

        items = fetch_feed_items(source)

        mock_fetch.assert_called_once_with("https://news.example.com/rss")
        assert len(items) == 2
