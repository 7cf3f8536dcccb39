"""
Database operations for the news feed recommender.

Uses SQLAlchemy ORM for database access. The public API uses dataclass models
from models.py, with conversion to/from ORM models handled internally.

Every mutating function runs inside write_session(), so shared aggregates
(keyword counters, source rankings, preferences) are only ever touched by
one writer at a time. Out-of-range values are clamped here, before they
reach the database.
"""

import time
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import IntegrityError

from news_feed.db_engine import get_engine, get_session, write_session
from news_feed.errors import DuplicateURLError
from news_feed.models import (
    Article,
    BenchmarkEntry,
    KeywordStat,
    Rating,
    Source,
    UserPreference,
)
from news_feed.orm_models import (
    Base,
    ArticleORM,
    BenchmarkEntryORM,
    KeywordORM,
    SourceORM,
    UserPreferenceORM,
    article_orm_to_dataclass,
    benchmark_orm_to_dataclass,
    copy_article_to_orm,
    keyword_orm_to_dataclass,
    preference_orm_to_dataclass,
    source_orm_to_dataclass,
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def init_db():
    """Initialize the database schema."""
    engine = get_engine()
    Base.metadata.create_all(engine)


# Sources


def get_all_sources() -> List[Source]:
    """Get every configured source, best-ranked first."""
    with get_session() as session:
        stmt = select(SourceORM).order_by(SourceORM.ranking.desc(), SourceORM.id.asc())
        return [source_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars().all()]


def get_active_sources() -> List[Source]:
    """Get all sources that should be fetched."""
    with get_session() as session:
        stmt = select(SourceORM).where(SourceORM.is_active.is_(True)).order_by(SourceORM.id.asc())
        return [source_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars().all()]


def get_source_by_id(source_id: int) -> Optional[Source]:
    """Get a source by its database ID."""
    with get_session() as session:
        orm = session.get(SourceORM, source_id)
        if orm is None:
            return None
        return source_orm_to_dataclass(orm)


def upsert_source(source: Source) -> Source:
    """Insert a new source or update an existing one.

    Returns the stored source, with its id assigned if it was new.
    """
    with write_session() as session:
        orm = session.get(SourceORM, source.id) if source.id is not None else None
        if orm is None:
            orm = SourceORM(added_at=source.added_at or int(time.time()))
            session.add(orm)
        orm.name = source.name
        orm.source_type = source.source_type.value
        orm.url = source.url
        orm.feed_url = source.feed_url
        orm.is_active = source.is_active
        orm.ranking = _clamp(source.ranking, 0.0, 1.0)
        orm.last_fetched_at = source.last_fetched_at
        orm.fetch_interval_minutes = source.fetch_interval_minutes
        session.flush()
        return source_orm_to_dataclass(orm)


def delete_source(source_id: int) -> bool:
    """Delete a source together with all of its articles.

    Returns True if the source existed.
    """
    with write_session() as session:
        orm = session.get(SourceORM, source_id)
        if orm is None:
            return False
        session.execute(delete(ArticleORM).where(ArticleORM.source_id == source_id))
        session.delete(orm)
        return True


def mark_source_fetched(source_id: int, fetched_at: Optional[int] = None):
    """Record that a source finished a fetch."""
    with write_session() as session:
        orm = session.get(SourceORM, source_id)
        if orm is not None:
            orm.last_fetched_at = fetched_at if fetched_at is not None else int(time.time())


def adjust_source_ranking(source_id: int, delta: float) -> Optional[float]:
    """Add delta to a source's ranking, clamped to [0, 1].

    Returns the new ranking, or None if the source does not exist.
    """
    with write_session() as session:
        orm = session.get(SourceORM, source_id)
        if orm is None:
            return None
        orm.ranking = _clamp(orm.ranking + delta, 0.0, 1.0)
        return orm.ranking


def seed_default_sources(sources: Iterable[Source]) -> int:
    """Insert the given sources if, and only if, no source exists yet.

    Returns the number of sources inserted.
    """
    with write_session() as session:
        if session.execute(select(func.count()).select_from(SourceORM)).scalar():
            return 0
        now = int(time.time())
        count = 0
        for source in sources:
            session.add(SourceORM(
                name=source.name,
                source_type=source.source_type.value,
                url=source.url,
                feed_url=source.feed_url,
                is_active=source.is_active,
                ranking=_clamp(source.ranking, 0.0, 1.0),
                added_at=now,
                last_fetched_at=None,
                fetch_interval_minutes=source.fetch_interval_minutes,
            ))
            count += 1
        return count


# Articles


def article_exists(url: str) -> bool:
    """Check if an article with this URL is already stored."""
    with get_session() as session:
        stmt = select(exists().where(ArticleORM.url == url))
        return session.execute(stmt).scalar()


def get_article_by_id(article_id: int) -> Optional[Article]:
    """Get an article by its database ID."""
    with get_session() as session:
        orm = session.get(ArticleORM, article_id)
        if orm is None:
            return None
        return article_orm_to_dataclass(orm)


def upsert_article(article: Article) -> Article:
    """Insert a new article, or update the stored row with the same id.

    Raises DuplicateURLError if the URL already belongs to another row.
    """
    if article.relevance_score is not None:
        article.relevance_score = _clamp(article.relevance_score, 0.0, 1.0)
    if article.sentiment is not None:
        article.sentiment = _clamp(article.sentiment, -1.0, 1.0)
    if not article.fetched_at:
        article.fetched_at = int(time.time())

    with write_session() as session:
        orm = session.get(ArticleORM, article.id) if article.id is not None else None

        stmt = select(ArticleORM.id).where(ArticleORM.url == article.url)
        existing_id = session.execute(stmt).scalar_one_or_none()
        if existing_id is not None and (orm is None or existing_id != orm.id):
            raise DuplicateURLError(article.url)

        if orm is None:
            orm = ArticleORM()
            session.add(orm)
        copy_article_to_orm(article, orm)
        try:
            session.flush()
        except IntegrityError as e:
            raise DuplicateURLError(article.url) from e
        return article_orm_to_dataclass(orm)


def list_articles(limit: int = 50, offset: int = 0) -> List[Article]:
    """List articles, most relevant first, then most recently published."""
    with get_session() as session:
        stmt = (
            select(ArticleORM)
            .order_by(ArticleORM.relevance_score.desc(), ArticleORM.published_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [article_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars().all()]


def list_bookmarked_articles() -> List[Article]:
    """List bookmarked articles, most recently published first."""
    with get_session() as session:
        stmt = (
            select(ArticleORM)
            .where(ArticleORM.is_bookmarked.is_(True))
            .order_by(ArticleORM.published_at.desc())
        )
        return [article_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars().all()]


def update_article_rating(article_id: int, rating: Rating):
    """Set the user's rating on an article."""
    with write_session() as session:
        orm = session.get(ArticleORM, article_id)
        if orm is not None:
            orm.rating = rating.value


def toggle_bookmark(article_id: int) -> Optional[bool]:
    """Flip an article's bookmark flag. Returns the new value."""
    with write_session() as session:
        orm = session.get(ArticleORM, article_id)
        if orm is None:
            return None
        orm.is_bookmarked = not orm.is_bookmarked
        return orm.is_bookmarked


def mark_article_read(article_id: int, read_at: Optional[int] = None):
    """Record when an article was read."""
    with write_session() as session:
        orm = session.get(ArticleORM, article_id)
        if orm is not None:
            orm.read_at = read_at if read_at is not None else int(time.time())


def save_llm_summary(article_id: int, summary: str):
    """Store a generated summary for an article."""
    with write_session() as session:
        orm = session.get(ArticleORM, article_id)
        if orm is not None:
            orm.llm_summary = summary


def update_relevance_scores(scores: Dict[int, float]) -> int:
    """Persist recomputed relevance scores keyed by article id.

    Returns the number of articles updated.
    """
    updated = 0
    with write_session() as session:
        for article_id, score in scores.items():
            orm = session.get(ArticleORM, article_id)
            if orm is None:
                continue
            orm.relevance_score = _clamp(score, 0.0, 1.0)
            updated += 1
    return updated


# Keywords and preferences


def get_keyword_stat(keyword: str) -> Optional[KeywordStat]:
    """Get the feedback counters for a keyword."""
    with get_session() as session:
        stmt = select(KeywordORM).where(KeywordORM.name == keyword)
        orm = session.execute(stmt).scalar_one_or_none()
        if orm is None:
            return None
        return keyword_orm_to_dataclass(orm)


def upsert_keyword_stat(keyword: str, positive: bool) -> KeywordStat:
    """Count one feedback event against a keyword."""
    with write_session() as session:
        stmt = select(KeywordORM).where(KeywordORM.name == keyword)
        orm = session.execute(stmt).scalar_one_or_none()
        if orm is None:
            orm = KeywordORM(name=keyword, usage_count=0, positive_count=0, negative_count=0)
            session.add(orm)
        orm.usage_count += 1
        if positive:
            orm.positive_count += 1
        else:
            orm.negative_count += 1
        session.flush()
        return keyword_orm_to_dataclass(orm)


def get_user_preferences() -> List[UserPreference]:
    """Get every learned keyword preference."""
    with get_session() as session:
        stmt = select(UserPreferenceORM).order_by(UserPreferenceORM.keyword.asc())
        return [preference_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars().all()]


def get_user_preference(keyword: str) -> Optional[UserPreference]:
    """Get the learned preference for a single keyword."""
    with get_session() as session:
        orm = session.get(UserPreferenceORM, keyword)
        if orm is None:
            return None
        return preference_orm_to_dataclass(orm)


def update_user_preference(
    keyword: str,
    update_fn: Callable[[UserPreference], UserPreference],
) -> UserPreference:
    """Read, modify and write a keyword preference as one step.

    A keyword without a stored preference starts from weight 0, confidence 0.
    The result of update_fn is clamped before it is written.
    """
    with write_session() as session:
        orm = session.get(UserPreferenceORM, keyword)
        current = (
            preference_orm_to_dataclass(orm)
            if orm is not None
            else UserPreference(keyword=keyword, weight=0.0, confidence=0.0)
        )
        updated = update_fn(current)

        if orm is None:
            orm = UserPreferenceORM(keyword=keyword)
            session.add(orm)
        orm.weight = _clamp(updated.weight, -1.0, 1.0)
        orm.confidence = _clamp(updated.confidence, 0.0, 1.0)
        orm.last_updated = int(time.time())
        session.flush()
        return preference_orm_to_dataclass(orm)


# Benchmarks


def store_benchmark_entry(entry: BenchmarkEntry) -> int:
    """Store a leaderboard row. Returns the entry id."""
    orm = BenchmarkEntryORM(
        benchmark_name=entry.benchmark_name,
        model_name=entry.model_name,
        score=entry.score,
        recorded_at=entry.recorded_at or int(time.time()),
        source_url=entry.source_url,
        notes=entry.notes,
    )
    with write_session() as session:
        session.add(orm)
        session.flush()
        return orm.id


def get_benchmark_history(benchmark_name: str) -> List[BenchmarkEntry]:
    """Get every stored row for a benchmark, newest first."""
    with get_session() as session:
        stmt = (
            select(BenchmarkEntryORM)
            .where(BenchmarkEntryORM.benchmark_name == benchmark_name)
            .order_by(BenchmarkEntryORM.recorded_at.desc(), BenchmarkEntryORM.id.desc())
        )
        return [benchmark_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars().all()]


def get_current_leaders() -> Dict[str, BenchmarkEntry]:
    """Get the best-scoring entry for each benchmark."""
    with get_session() as session:
        stmt = select(BenchmarkEntryORM).order_by(
            BenchmarkEntryORM.score.desc(), BenchmarkEntryORM.recorded_at.desc()
        )
        leaders: Dict[str, BenchmarkEntry] = {}
        for orm in session.execute(stmt).scalars().all():
            if orm.benchmark_name not in leaders:
                leaders[orm.benchmark_name] = benchmark_orm_to_dataclass(orm)
        return leaders
