"""
Heuristic article extraction from plain web pages.
"""

from typing import List, Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from news_feed.constants import (
    ARTICLE_SELECTORS,
    MAX_SCRAPED_ITEMS,
    SUMMARY_SELECTOR,
    TITLE_SELECTOR,
)
from news_feed.models import NormalizedItem, Source
from news_feed.retrieval import fetch_bytes
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def _element_text(element) -> Optional[str]:
    if element is None:
        return None
    text = " ".join(element.get_text(" ", strip=True).split())
    return text or None


def extract_items_from_html(
    html: Union[str, bytes],
    base_url: str,
    max_items: int = MAX_SCRAPED_ITEMS,
) -> List[NormalizedItem]:
    """
    Extract article-like blocks from an HTML page.

    Selectors are tried in order and the first one that matches anything
    wins, even if none of its blocks turn out to be usable.

    Args:
        html: The page markup, as text or as fetched bytes.
        base_url: URL the page was fetched from, used to resolve relative links.
        max_items: Maximum number of items to return.

    Returns:
        List of normalized items; empty if no selector matched.
    """
    soup = BeautifulSoup(html, "html.parser")

    for selector in ARTICLE_SELECTORS:
        blocks = soup.select(selector)
        if not blocks:
            continue

        items = []
        seen_urls = set()
        for block in blocks:
            title = _element_text(block.select_one(TITLE_SELECTOR))
            anchor = block.select_one("a[href]")
            href = (anchor.get("href") or "").strip() if anchor is not None else ""
            if not title or not href or href.startswith(("javascript:", "#")):
                continue

            url = urljoin(base_url, href)
            if url in seen_urls:
                continue
            seen_urls.add(url)

            items.append(NormalizedItem(
                title=title,
                url=url,
                summary=_element_text(block.select_one(SUMMARY_SELECTOR)),
            ))
            if len(items) >= max_items:
                break

        logger.debug(f"Selector {selector!r} matched {len(blocks)} blocks on {base_url}")
        return items

    logger.warning(f"No article selector matched on {base_url}")
    return []


def scrape_source(source: Source, max_items: int = MAX_SCRAPED_ITEMS) -> List[NormalizedItem]:
    """Fetch a source's page and extract its articles.

    Raises FetchError if the page cannot be retrieved.
    """
    html = fetch_bytes(source.url)
    return extract_items_from_html(html, source.url, max_items=max_items)
