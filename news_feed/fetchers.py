"""
Per-source-type fetch dispatch.

Each source type maps to one fetch function with the same shape:
Source -> FetchResult. Fetch functions only read from the network; nothing
here touches the database.
"""

from typing import Callable, Dict

from news_feed.benchmarks import fetch_benchmark_source
from news_feed.models import FetchResult, Source, SourceType
from news_feed.rss_feed import fetch_feed_items
from news_feed.scraper import scrape_source


def fetch_feed_source(source: Source) -> FetchResult:
    return FetchResult(items=fetch_feed_items(source))


def fetch_website_source(source: Source) -> FetchResult:
    return FetchResult(items=scrape_source(source))


def fetch_person_source(source: Source) -> FetchResult:
    """People are followed through their feed when they have one, else their page."""
    if source.feed_url:
        return fetch_feed_source(source)
    return fetch_website_source(source)


FETCHERS: Dict[SourceType, Callable[[Source], FetchResult]] = {
    SourceType.FEED: fetch_feed_source,
    SourceType.WEBSITE: fetch_website_source,
    SourceType.PERSON: fetch_person_source,
    SourceType.BENCHMARK: fetch_benchmark_source,
}


def fetch_source(source: Source) -> FetchResult:
    """Fetch a source with the fetcher registered for its type.

    Raises FetchError if the source cannot be retrieved or parsed.
    """
    return FETCHERS[source.source_type](source)
