"""
Benchmark leaderboard tracking.

Leaderboards come from two places: Papers with Code SOTA pages (HTML tables)
and the Open LLM Leaderboard rows API (JSON). Every parsed row becomes a
BenchmarkEntry; the leader of each SOTA table also becomes a news item.
"""

import re
import time
from typing import Dict, List, Optional, Union

from bs4 import BeautifulSoup

from news_feed.constants import (
    MAX_LEADERBOARD_ROWS,
    OPEN_LLM_LEADERBOARD_API,
    OPEN_LLM_LEADERBOARD_COLUMNS,
    OPEN_LLM_LEADERBOARD_URL,
    PAPERS_WITH_CODE_BENCHMARKS,
)
from news_feed.errors import FetchError
from news_feed.models import BenchmarkEntry, FetchResult, NormalizedItem, Source
from news_feed.retrieval import fetch_bytes, fetch_json
from util.logging_util import setup_logger

logger = setup_logger(__name__)

LEADER_RELEVANCE = 0.8
LEADER_SENTIMENT = 0.5


def _parse_score(text: str) -> Optional[float]:
    try:
        return float(text.replace("%", "").strip())
    except ValueError:
        return None


def _slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def parse_leaderboard_table(
    html: Union[str, bytes],
    benchmark_name: str,
    source_url: str,
    max_rows: int = MAX_LEADERBOARD_ROWS,
) -> List[BenchmarkEntry]:
    """
    Parse the top rows of a leaderboard table.

    The model name is read from the first cell and the score from the second.
    Rows with fewer than three cells or an unparseable score are skipped, but
    still count towards max_rows. Entry notes hold the 1-based rank.
    """
    soup = BeautifulSoup(html, "html.parser")
    recorded_at = int(time.time())

    entries = []
    for rank, row in enumerate(soup.select("table tbody tr")[:max_rows], start=1):
        cells = row.find_all("td")
        if len(cells) < 3:
            continue
        model_name = cells[0].get_text(" ", strip=True)
        score = _parse_score(cells[1].get_text(strip=True))
        if not model_name or score is None:
            continue
        entries.append(BenchmarkEntry(
            benchmark_name=benchmark_name,
            model_name=model_name,
            score=score,
            recorded_at=recorded_at,
            source_url=source_url,
            notes=f"rank {rank}",
        ))
    return entries


def make_leader_item(entry: BenchmarkEntry) -> NormalizedItem:
    """Build the news item announcing a benchmark's current leader.

    The leader's name is part of the URL, so a new leader yields a new
    article while a repeated leader is deduplicated on storage.
    """
    base_url = entry.source_url or ""
    return NormalizedItem(
        title=f"🏆 {entry.model_name} leads {entry.benchmark_name} benchmark with {entry.score:.1f}%",
        url=f"{base_url}#leader-{_slugify(entry.model_name)}",
        summary=(
            f"According to Papers with Code, {entry.model_name} currently achieves "
            f"state-of-the-art performance on the {entry.benchmark_name} benchmark "
            f"with a score of {entry.score:.2f}%."
        ),
        published_at=entry.recorded_at,
        author="Papers with Code",
        keywords=[entry.benchmark_name, entry.model_name, "benchmark", "SOTA", "leaderboard"],
        categories=["benchmark"],
        sentiment=LEADER_SENTIMENT,
        relevance_score=LEADER_RELEVANCE,
    )


def _is_rank_one(entry: BenchmarkEntry) -> bool:
    return entry.notes == "rank 1"


def fetch_sota_table(benchmark_name: str, url: str) -> FetchResult:
    """Fetch one SOTA page. Raises FetchError if the page cannot be retrieved."""
    entries = parse_leaderboard_table(fetch_bytes(url), benchmark_name, url)
    items = [make_leader_item(entry) for entry in entries if _is_rank_one(entry)]
    return FetchResult(entries=entries, items=items)


def fetch_papers_with_code_benchmarks(
    catalog: Dict[str, str] = None,
) -> FetchResult:
    """
    Fetch every SOTA table in the catalog.

    A page that fails is logged and skipped; the others still contribute.
    """
    if catalog is None:
        catalog = PAPERS_WITH_CODE_BENCHMARKS

    result = FetchResult()
    for benchmark_name, url in catalog.items():
        try:
            table = fetch_sota_table(benchmark_name, url)
        except FetchError as e:
            logger.error(f"Error fetching Papers with Code {benchmark_name}: {e}")
            continue
        result.entries.extend(table.entries)
        result.items.extend(table.items)

    logger.info(
        f"Papers with Code: {len(result.entries)} rows, {len(result.items)} leaders "
        f"from {len(catalog)} benchmarks"
    )
    return result


def parse_open_llm_leaderboard(payload: dict, max_rows: int = MAX_LEADERBOARD_ROWS) -> List[BenchmarkEntry]:
    """Turn a rows-API payload into one entry per (model, scored column)."""
    recorded_at = int(time.time())
    entries = []
    for wrapper in (payload.get("rows") or [])[:max_rows]:
        row = wrapper.get("row") if isinstance(wrapper, dict) else None
        if not isinstance(row, dict):
            continue
        model_name = row.get("fullname") or "Unknown"
        for column, benchmark_name in OPEN_LLM_LEADERBOARD_COLUMNS.items():
            value = row.get(column)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            entries.append(BenchmarkEntry(
                benchmark_name=benchmark_name,
                model_name=model_name,
                score=float(value),
                recorded_at=recorded_at,
                source_url=OPEN_LLM_LEADERBOARD_URL,
            ))
    return entries


def fetch_open_llm_leaderboard(api_url: str = OPEN_LLM_LEADERBOARD_API) -> FetchResult:
    """Fetch the Open LLM Leaderboard. Failures yield an empty result."""
    try:
        payload = fetch_json(api_url)
    except FetchError as e:
        logger.error(f"Error fetching Open LLM Leaderboard: {e}")
        return FetchResult()
    entries = parse_open_llm_leaderboard(payload)
    logger.info(f"Open LLM Leaderboard: {len(entries)} scores")
    return FetchResult(entries=entries)


def fetch_benchmark_source(source: Source) -> FetchResult:
    """
    Fetch a user-configured benchmark tracker.

    Its feed_url is read as a leaderboard table named after the source. A
    tracker without a feed_url contributes nothing; the catalog tasks cover it.
    Raises FetchError if the leaderboard page cannot be retrieved.
    """
    if not source.feed_url:
        logger.debug(f"Benchmark source {source.name} has no leaderboard URL")
        return FetchResult()
    return fetch_sota_table(source.name, source.feed_url)
