"""
Syndication feed fetching and normalization (RSS, Atom and JSON Feed).
"""

import calendar
from datetime import datetime, timezone
from typing import List, Optional

from html2text import html2text

from news_feed.constants import MAX_FEED_ITEMS
from news_feed.models import NormalizedItem, Source
from news_feed.retrieval import FeedKind, ParsedFeed, fetch_bytes, parse_feed
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def _struct_time_to_epoch(parsed_time) -> Optional[int]:
    """Convert a feedparser struct_time (always UTC) to epoch seconds."""
    if parsed_time is None:
        return None
    try:
        return int(calendar.timegm(parsed_time))
    except (TypeError, ValueError, OverflowError):
        return None


def _iso_to_epoch(value: Optional[str]) -> Optional[int]:
    """Convert an RFC 3339 date string (as used by JSON Feed) to epoch seconds."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def _extract_author(entry: dict) -> Optional[str]:
    """Extract the first author name from an RSS/Atom/JSON entry.

    Handles various formats:
    - List of dicts with 'name' key (Atom, JSON Feed 1.1)
    - Single dict with 'name' key (JSON Feed 1.0)
    - Single 'author' string (RSS)
    """
    authors = entry.get("authors")
    if isinstance(authors, list):
        for author in authors:
            name = author.get("name", "") if isinstance(author, dict) else str(author)
            if name and name.strip():
                return name.strip()

    author = entry.get("author")
    if isinstance(author, dict):
        name = author.get("name", "")
        return name.strip() or None
    if isinstance(author, str) and author.strip():
        return author.strip()
    return None


def _extract_summary(entry: dict) -> Optional[str]:
    """Extract and clean summary/description from a feed entry."""
    summary = (
        entry.get("summary")
        or entry.get("description")
        or entry.get("content_text")
        or entry.get("content_html")
        or ""
    )
    if not summary:
        return None
    # Convert HTML to plain text
    text = html2text(summary).strip()
    return text or None


def _extract_atom_link(entry: dict) -> str:
    link = entry.get("link", "")
    if link:
        return link
    for candidate in entry.get("links", []) or []:
        href = candidate.get("href") if isinstance(candidate, dict) else None
        if href:
            return href
    return ""


def _normalize_entry(kind: FeedKind, entry: dict) -> Optional[NormalizedItem]:
    """Turn one feed entry into a NormalizedItem.

    Returns None when the entry has no title or no link.
    """
    title = entry.get("title")
    title = title.strip() if isinstance(title, str) else ""

    if kind == FeedKind.JSON:
        link = entry.get("url") or entry.get("external_url") or ""
        published_at = _iso_to_epoch(entry.get("date_published") or entry.get("date_modified"))
    elif kind == FeedKind.ATOM:
        link = _extract_atom_link(entry)
        published_at = _struct_time_to_epoch(
            entry.get("published_parsed") or entry.get("updated_parsed")
        )
    else:
        link = entry.get("link", "")
        published_at = _struct_time_to_epoch(entry.get("published_parsed"))

    link = link.strip() if isinstance(link, str) else ""
    if not title or not link:
        return None

    return NormalizedItem(
        title=title,
        url=link,
        summary=_extract_summary(entry),
        published_at=published_at,
        author=_extract_author(entry),
    )


def normalize_feed(feed: ParsedFeed, max_items: int = MAX_FEED_ITEMS) -> List[NormalizedItem]:
    """Normalize a parsed feed, skipping unusable entries and repeated links."""
    seen_urls = set()
    items = []
    for entry in feed.entries:
        item = _normalize_entry(feed.kind, entry)
        if item is None:
            logger.debug(f"Skipping feed entry without title or link: {entry.get('id', '')}")
            continue
        if item.url in seen_urls:
            continue
        seen_urls.add(item.url)
        items.append(item)
        if len(items) >= max_items:
            break
    return items


def fetch_feed_items(source: Source, max_items: int = MAX_FEED_ITEMS) -> List[NormalizedItem]:
    """
    Fetch and normalize the items of a feed source.

    Args:
        source: The source to fetch. Its feed_url is used when set, otherwise its url.
        max_items: Maximum number of items to return.

    Returns:
        List of normalized items, newest first as ordered by the feed.

    Raises:
        FetchError: if the feed cannot be retrieved or parsed.
    """
    feed_url = source.feed_url or source.url
    feed = parse_feed(fetch_bytes(feed_url))
    items = normalize_feed(feed, max_items=max_items)
    logger.info(f"Parsed {len(items)} items from {feed.kind.value} feed {source.name}")
    return items
