#!/usr/bin/env python3
"""Run one news refresh and print the ranked feed.

Usage:
    python refresh_news.py
    python refresh_news.py --only-due --limit 20
    NEWS_LLM_PROVIDER=none python refresh_news.py --no-benchmarks
"""

import argparse
import sys

from llm.providers import ConfigurationError
from news_feed.database import init_db
from news_feed.recommender import RecommendationEngine
from news_feed.refresh import ranked_feed, refresh
from news_feed.source_registry import ensure_default_sources
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Fetch AI news and rank it")
    parser.add_argument("--limit", type=int, default=20, help="Number of articles to print")
    parser.add_argument("--only-due", action="store_true", help="Skip sources fetched recently")
    parser.add_argument("--no-benchmarks", action="store_true", help="Skip the benchmark catalog")
    args = parser.parse_args()

    init_db()
    ensure_default_sources()

    engine = RecommendationEngine()
    try:
        summary = refresh(engine=engine, only_due=args.only_due, include_catalog=not args.no_benchmarks)
    except ConfigurationError as e:
        logger.error(f"Cannot refresh: {e}")
        sys.exit(1)

    print(
        f"Fetched {summary.sources_fetched} sources ({summary.sources_failed} failed), "
        f"{summary.new_articles} new articles\n"
    )

    articles = ranked_feed(limit=args.limit, engine=engine)
    for i, article in enumerate(articles, start=1):
        print(f"#{i} [{article.relevance_score:.2f}] {article.title}")
        print(f"    {article.url}")
        summary_text = article.llm_summary or article.summary
        if summary_text:
            print(f"    {summary_text[:200]}")

    report = engine.diversity_report(articles)
    print(f"\nDiversity {report.score:.2f}: {report.status.description}")
    suggestions = engine.exploration_suggestions()
    if suggestions:
        print(f"Try exploring: {', '.join(suggestions)}")


if __name__ == "__main__":
    main()
