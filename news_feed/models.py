"""
Data models for the news feed recommender.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

from news_feed.constants import (
    DEFAULT_FETCH_INTERVAL_MINUTES,
    DEFAULT_RELEVANCE_SCORE,
    DEFAULT_SOURCE_RANKING,
)


class SourceType(Enum):
    FEED = "feed"
    WEBSITE = "website"
    PERSON = "person"
    BENCHMARK = "benchmark"


class Rating(Enum):
    NEGATIVE = -1
    NEUTRAL = 0
    POSITIVE = 1


class FilterBubbleStatus(Enum):
    HEALTHY = "healthy"
    MODERATE = "moderate"
    NARROW = "narrow"

    @property
    def description(self) -> str:
        return {
            FilterBubbleStatus.HEALTHY: "Your feed is diverse and well-balanced",
            FilterBubbleStatus.MODERATE: "Consider exploring some new topics",
            FilterBubbleStatus.NARROW: "Warning: You might be in a filter bubble",
        }[self]


@dataclass
class Source:
    """A configured origin of articles."""
    name: str
    source_type: SourceType
    url: str
    id: Optional[int] = None
    feed_url: Optional[str] = None
    is_active: bool = True
    ranking: float = DEFAULT_SOURCE_RANKING
    added_at: int = 0
    last_fetched_at: Optional[int] = None
    fetch_interval_minutes: int = DEFAULT_FETCH_INTERVAL_MINUTES


@dataclass
class NormalizedItem:
    """A single item produced by a fetcher, before enrichment and storage.

    Fetchers that already know an item's features (synthesized benchmark
    articles) fill in keywords/categories/sentiment so enrichment is skipped.
    """
    title: str
    url: str
    summary: Optional[str] = None
    published_at: Optional[int] = None
    author: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    sentiment: Optional[float] = None
    relevance_score: Optional[float] = None


@dataclass
class Article:
    """A normalized, enriched news item tied to exactly one source."""
    source_id: int
    title: str
    url: str
    id: Optional[int] = None
    summary: Optional[str] = None
    llm_summary: Optional[str] = None
    image_url: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[int] = None
    fetched_at: int = 0
    rating: Optional[Rating] = None
    is_bookmarked: bool = False
    read_at: Optional[int] = None
    keywords: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    sentiment: Optional[float] = None
    relevance_score: float = DEFAULT_RELEVANCE_SCORE


@dataclass
class KeywordStat:
    """Feedback counters for a single keyword."""
    keyword: str
    usage_count: int = 0
    positive_count: int = 0
    negative_count: int = 0

    @property
    def score(self) -> float:
        if self.usage_count <= 0:
            return 0.5
        return self.positive_count / self.usage_count


@dataclass
class UserPreference:
    """Learned affinity for a keyword.

    weight is in [-1, 1] (negative means disliked), confidence is in [0, 1]
    and grows as the keyword keeps receiving feedback.
    """
    keyword: str
    weight: float = 0.0
    confidence: float = 0.0
    last_updated: int = 0


@dataclass
class BenchmarkEntry:
    """One leaderboard row for a named benchmark."""
    benchmark_name: str
    model_name: str
    score: float
    recorded_at: int = 0
    id: Optional[int] = None
    source_url: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class DiversityReport:
    """Feed-level diversity metrics."""
    score: float
    status: FilterBubbleStatus
    unique_keywords: int = 0
    unique_categories: int = 0
    unique_sources: int = 0


@dataclass
class FetchResult:
    """What one fetch task produced: news items and leaderboard rows."""
    items: List[NormalizedItem] = field(default_factory=list)
    entries: List[BenchmarkEntry] = field(default_factory=list)
