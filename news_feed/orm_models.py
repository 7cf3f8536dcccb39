"""
SQLAlchemy ORM models for the news feed recommender.

These models are internal to the database layer. The public interface
uses the dataclass models from models.py.
"""

import json
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from news_feed.models import (
    Article,
    BenchmarkEntry,
    KeywordStat,
    Rating,
    Source,
    SourceType,
    UserPreference,
)


class JSONEncodedList(TypeDecorator):
    """Represents an ordered list of strings as a JSON-encoded string."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[List], dialect) -> str:
        return json.dumps(value or [])

    def process_result_value(self, value: Optional[str], dialect) -> List:
        if value is None:
            return []
        return json.loads(value)


class Base(DeclarativeBase):
    pass


class SourceORM(Base):
    """SQLAlchemy model for sources table."""

    __tablename__ = "sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    source_type: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    feed_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    ranking: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)
    added_at: Mapped[int] = mapped_column(Integer, nullable=False)
    last_fetched_at: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    fetch_interval_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)


class ArticleORM(Base):
    """SQLAlchemy model for articles table."""

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sources.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    llm_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published_at: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    fetched_at: Mapped[int] = mapped_column(Integer, nullable=False)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_bookmarked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    keywords: Mapped[List[str]] = mapped_column(JSONEncodedList, nullable=False, default=list)
    categories: Mapped[List[str]] = mapped_column(JSONEncodedList, nullable=False, default=list)
    sentiment: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    relevance_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)

    __table_args__ = (
        Index("idx_articles_published_at", "published_at"),
        Index("idx_articles_relevance_score", "relevance_score"),
        Index("idx_articles_source_id", "source_id"),
    )


class KeywordORM(Base):
    """SQLAlchemy model for keywords table."""

    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    positive_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    negative_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class UserPreferenceORM(Base):
    """SQLAlchemy model for user_preferences table."""

    __tablename__ = "user_preferences"

    keyword: Mapped[str] = mapped_column(Text, primary_key=True)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_updated: Mapped[int] = mapped_column(Integer, nullable=False)


class BenchmarkEntryORM(Base):
    """SQLAlchemy model for benchmark_entries table."""

    __tablename__ = "benchmark_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    benchmark_name: Mapped[str] = mapped_column(Text, nullable=False)
    model_name: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_at: Mapped[int] = mapped_column(Integer, nullable=False)
    source_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_benchmarks_name_model", "benchmark_name", "model_name"),
    )


# Conversion functions between ORM models and dataclasses


def source_orm_to_dataclass(orm: SourceORM) -> Source:
    """Convert a SourceORM instance to a Source dataclass."""
    return Source(
        id=orm.id,
        name=orm.name,
        source_type=SourceType(orm.source_type),
        url=orm.url,
        feed_url=orm.feed_url,
        is_active=bool(orm.is_active),
        ranking=orm.ranking,
        added_at=orm.added_at,
        last_fetched_at=orm.last_fetched_at,
        fetch_interval_minutes=orm.fetch_interval_minutes,
    )


def article_orm_to_dataclass(orm: ArticleORM) -> Article:
    """Convert an ArticleORM instance to an Article dataclass."""
    return Article(
        id=orm.id,
        source_id=orm.source_id,
        title=orm.title,
        summary=orm.summary,
        llm_summary=orm.llm_summary,
        url=orm.url,
        image_url=orm.image_url,
        author=orm.author,
        published_at=orm.published_at,
        fetched_at=orm.fetched_at,
        rating=Rating(orm.rating) if orm.rating is not None else None,
        is_bookmarked=bool(orm.is_bookmarked),
        read_at=orm.read_at,
        keywords=orm.keywords or [],
        categories=orm.categories or [],
        sentiment=orm.sentiment,
        relevance_score=orm.relevance_score,
    )


def copy_article_to_orm(article: Article, orm: ArticleORM) -> ArticleORM:
    """Copy the mutable fields of an Article dataclass onto an ArticleORM."""
    orm.source_id = article.source_id
    orm.title = article.title
    orm.summary = article.summary
    orm.llm_summary = article.llm_summary
    orm.url = article.url
    orm.image_url = article.image_url
    orm.author = article.author
    orm.published_at = article.published_at
    orm.fetched_at = article.fetched_at
    orm.rating = article.rating.value if article.rating is not None else None
    orm.is_bookmarked = article.is_bookmarked
    orm.read_at = article.read_at
    orm.keywords = list(article.keywords)
    orm.categories = list(article.categories)
    orm.sentiment = article.sentiment
    orm.relevance_score = article.relevance_score
    return orm


def keyword_orm_to_dataclass(orm: KeywordORM) -> KeywordStat:
    """Convert a KeywordORM instance to a KeywordStat dataclass."""
    return KeywordStat(
        keyword=orm.name,
        usage_count=orm.usage_count,
        positive_count=orm.positive_count,
        negative_count=orm.negative_count,
    )


def preference_orm_to_dataclass(orm: UserPreferenceORM) -> UserPreference:
    """Convert a UserPreferenceORM instance to a UserPreference dataclass."""
    return UserPreference(
        keyword=orm.keyword,
        weight=orm.weight,
        confidence=orm.confidence,
        last_updated=orm.last_updated,
    )


def benchmark_orm_to_dataclass(orm: BenchmarkEntryORM) -> BenchmarkEntry:
    """Convert a BenchmarkEntryORM instance to a BenchmarkEntry dataclass."""
    return BenchmarkEntry(
        id=orm.id,
        benchmark_name=orm.benchmark_name,
        model_name=orm.model_name,
        score=orm.score,
        recorded_at=orm.recorded_at,
        source_url=orm.source_url,
        notes=orm.notes,
    )
