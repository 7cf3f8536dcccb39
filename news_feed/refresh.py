"""
Refresh cycle orchestration.

One refresh fans out a fetch task per active source plus the benchmark
catalog tasks, and joins them all before re-scoring the stored feed. Each
task runs its blocking network and LLM calls on a worker thread; storage
writes are serialized by the database layer's writer lock.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from news_feed import database
from news_feed.benchmarks import fetch_open_llm_leaderboard, fetch_papers_with_code_benchmarks
from news_feed.enrichment import FeatureExtractor, build_feature_extractor, needs_generated_summary
from news_feed.errors import DuplicateURLError, FetchError
from news_feed.fetchers import fetch_source
from news_feed.models import (
    Article,
    BenchmarkEntry,
    FetchResult,
    NormalizedItem,
    Rating,
    Source,
    SourceType,
    UserPreference,
)
from news_feed.recommender import RecommendationEngine
from news_feed.source_registry import is_source_due
from util.logging_util import log_fetch_result, setup_logger

logger = setup_logger(__name__)

RESCORE_WINDOW = 200


@dataclass
class RefreshSummary:
    """Counts for one refresh cycle."""
    sources_fetched: int = 0
    sources_failed: int = 0
    new_articles: int = 0
    benchmark_entries: int = 0


def _build_article(source: Source, item: NormalizedItem) -> Article:
    return Article(
        source_id=source.id,
        title=item.title,
        url=item.url,
        summary=item.summary,
        author=item.author,
        published_at=item.published_at,
        keywords=list(item.keywords),
        categories=list(item.categories),
        sentiment=item.sentiment,
    )


def process_items(
    source: Source,
    items: List[NormalizedItem],
    extractor: FeatureExtractor,
    engine: RecommendationEngine,
    preferences: Optional[Dict[str, UserPreference]] = None,
) -> int:
    """
    Enrich, score and store a source's fetched items.

    Items whose URL is already stored are skipped before enrichment, so
    repeated refreshes do not spend completion calls on known articles.
    Items that arrive with keywords (synthesized benchmark articles) are
    stored as they are.

    Returns the number of new articles stored.
    """
    if preferences is None:
        preferences = engine.load_preferences()

    new_count = 0
    for item in items:
        if database.article_exists(item.url):
            logger.debug(f"Article already exists: {item.url}")
            continue

        article = _build_article(source, item)
        if not item.keywords:
            features = extractor.extract(
                item.title,
                item.summary,
                summarize=needs_generated_summary(item.summary),
            )
            article.llm_summary = features.summary
            article.keywords = features.keywords
            article.categories = features.categories
            article.sentiment = features.sentiment

        if item.relevance_score is not None:
            article.relevance_score = item.relevance_score
        else:
            article.relevance_score = engine.score(article, preferences)

        try:
            database.upsert_article(article)
        except DuplicateURLError:
            # Another task stored the same URL first
            logger.debug(f"Duplicate article skipped: {item.url}")
            continue
        new_count += 1

    return new_count


def store_benchmark_entries(entries: List[BenchmarkEntry]) -> int:
    for entry in entries:
        database.store_benchmark_entry(entry)
    return len(entries)


def _refresh_source(
    source: Source,
    extractor: FeatureExtractor,
    engine: RecommendationEngine,
) -> Optional[Tuple[FetchResult, int]]:
    """Fetch and ingest one source.

    Returns (result, new article count), or None if the fetch failed.
    """
    start = time.time()
    try:
        result = fetch_source(source)
    except FetchError as e:
        logger.error(f"Error fetching {source.name}: {e}")
        return None

    log_fetch_result(logger, source.name, len(result.items), (time.time() - start) * 1000)
    new_count = process_items(source, result.items, extractor, engine)
    store_benchmark_entries(result.entries)
    database.mark_source_fetched(source.id)
    return result, new_count


def _ingest_catalog(
    result: FetchResult,
    leader_source: Optional[Source],
    extractor: FeatureExtractor,
    engine: RecommendationEngine,
) -> Tuple[FetchResult, int]:
    store_benchmark_entries(result.entries)
    new_count = 0
    if result.items:
        if leader_source is None:
            logger.info("No benchmark source configured; leader articles not stored")
        else:
            new_count = process_items(leader_source, result.items, extractor, engine)
    return result, new_count


async def refresh_async(
    extractor: Optional[FeatureExtractor] = None,
    engine: Optional[RecommendationEngine] = None,
    only_due: bool = False,
    include_catalog: bool = True,
) -> RefreshSummary:
    """
    Run one refresh cycle.

    Args:
        extractor: Feature extractor; built from the environment when omitted,
            which raises ConfigurationError before anything is fetched if
            the selected provider is not usable.
        engine: Recommendation engine used for scoring.
        only_due: Skip sources whose fetch interval has not passed.
        include_catalog: Also fetch the benchmark catalog.

    Returns:
        A RefreshSummary. Per-source failures are counted, never raised.
    """
    if extractor is None:
        extractor = build_feature_extractor()
    if engine is None:
        engine = RecommendationEngine()

    sources = database.get_active_sources()
    leader_source = next(
        (source for source in sources if source.source_type == SourceType.BENCHMARK),
        None,
    )
    if only_due:
        now = int(time.time())
        sources = [source for source in sources if is_source_due(source, now)]

    logger.info(f"Starting refresh of {len(sources)} sources")
    tasks = [asyncio.to_thread(_refresh_source, source, extractor, engine) for source in sources]
    n_source_tasks = len(tasks)
    if include_catalog:
        tasks.append(asyncio.to_thread(
            lambda: _ingest_catalog(fetch_papers_with_code_benchmarks(), leader_source, extractor, engine)
        ))
        tasks.append(asyncio.to_thread(
            lambda: _ingest_catalog(fetch_open_llm_leaderboard(), leader_source, extractor, engine)
        ))

    results = await asyncio.gather(*tasks, return_exceptions=True)

    summary = RefreshSummary()
    storage_error = None
    for index, result in enumerate(results):
        is_source_task = index < n_source_tasks
        if isinstance(result, BaseException):
            name = sources[index].name if is_source_task else "benchmark catalog"
            logger.error(f"Refresh task for {name} failed: {result!r}")
            if is_source_task:
                summary.sources_failed += 1
            if isinstance(result, SQLAlchemyError) and storage_error is None:
                storage_error = result
            continue
        if is_source_task:
            if result is None:
                summary.sources_failed += 1
                continue
            summary.sources_fetched += 1
        fetch_result, new_count = result
        summary.new_articles += new_count
        summary.benchmark_entries += len(fetch_result.entries)

    if storage_error is not None:
        raise storage_error

    engine.rescore_stored_articles(limit=RESCORE_WINDOW)

    logger.info(
        f"Refresh complete: {summary.sources_fetched} sources fetched, "
        f"{summary.sources_failed} failed, {summary.new_articles} new articles, "
        f"{summary.benchmark_entries} benchmark scores"
    )
    return summary


def refresh(
    extractor: Optional[FeatureExtractor] = None,
    engine: Optional[RecommendationEngine] = None,
    only_due: bool = False,
    include_catalog: bool = True,
) -> RefreshSummary:
    """Blocking wrapper around refresh_async."""
    return asyncio.run(refresh_async(extractor, engine, only_due, include_catalog))


def ranked_feed(limit: int = 50, engine: Optional[RecommendationEngine] = None) -> List[Article]:
    """The stored articles, freshly ranked. Order varies slightly between calls."""
    if engine is None:
        engine = RecommendationEngine()
    return engine.rank(database.list_articles(limit=limit))


def rate_article(
    article: Article,
    positive: bool,
    engine: Optional[RecommendationEngine] = None,
) -> Article:
    """Store a thumbs up/down on an article and learn from it."""
    if engine is None:
        engine = RecommendationEngine()
    article.rating = Rating.POSITIVE if positive else Rating.NEGATIVE
    database.update_article_rating(article.id, article.rating)
    engine.on_feedback(article, positive)
    return article
