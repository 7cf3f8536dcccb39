"""
HTTP retrieval and feed-format parsing.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

import feedparser  # type: ignore
import requests

from news_feed.errors import FetchError
from util.constants import HTTP_TIMEOUT_SECONDS, USER_AGENT
from util.logging_util import setup_logger

logger = setup_logger(__name__)


class FeedKind(Enum):
    ATOM = "atom"
    RSS = "rss"
    JSON = "json"


@dataclass
class ParsedFeed:
    """A syndication document, tagged with the format it was written in."""
    kind: FeedKind
    entries: List[dict] = field(default_factory=list)
    title: Optional[str] = None


def fetch_bytes(url: str, timeout: float = HTTP_TIMEOUT_SECONDS) -> bytes:
    """GET a URL and return the raw body.

    The body is left undecoded so the parser can honour the document's own
    charset declaration (meta tag or XML declaration).

    Raises FetchError on network failure or an HTTP error status.
    """
    try:
        resp = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(f"Request to {url} failed: {e}") from e

    if resp.status_code >= 400:
        raise FetchError(f"HTTP {resp.status_code} for {url}")
    return resp.content


def fetch_json(url: str, timeout: float = HTTP_TIMEOUT_SECONDS) -> dict:
    """GET a URL and decode the body as a JSON object."""
    body = fetch_bytes(url, timeout=timeout)
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FetchError(f"Invalid JSON from {url}: {e}") from e
    if not isinstance(payload, dict):
        raise FetchError(f"Expected a JSON object from {url}")
    return payload


def _parse_json_feed(document: Union[str, bytes]) -> ParsedFeed:
    try:
        payload = json.loads(document)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FetchError(f"Malformed JSON feed: {e}") from e
    if not isinstance(payload, dict) or not isinstance(payload.get("items", []), list):
        raise FetchError("JSON document is not a JSON Feed")
    items = [item for item in payload.get("items", []) if isinstance(item, dict)]
    return ParsedFeed(kind=FeedKind.JSON, entries=items, title=payload.get("title"))


def parse_feed(document: Union[str, bytes]) -> ParsedFeed:
    """Parse a syndication document into an Atom, RSS or JSON feed.

    Accepts raw bytes as fetched, or already-decoded text.

    Raises FetchError if the document is not a recognisable feed.
    """
    if document.lstrip()[:1] in ("{", b"{"):
        return _parse_json_feed(document)

    parsed = feedparser.parse(document)
    version = parsed.get("version") or ""
    if not version:
        if parsed.get("bozo"):
            raise FetchError(f"Malformed feed: {parsed.get('bozo_exception')}")
        raise FetchError("Document is not a recognised feed")

    kind = FeedKind.ATOM if version.startswith("atom") else FeedKind.RSS
    feed_meta = parsed.get("feed", {})
    return ParsedFeed(
        kind=kind,
        entries=list(parsed.get("entries", [])),
        title=feed_meta.get("title"),
    )
