"""
Relevance scoring, feedback learning and diversity metrics.

Scoring is a Thompson-Sampling analogue: each keyword's stored
(weight, confidence) pair stands in for a posterior, and a weight is sampled
from a Gaussian around it every time an article is scored. Confident
preferences sample close to their weight; unknown keywords sample from a
wide zero-mean Gaussian, which is what lets unfamiliar content surface.

Ranking adds a small random jitter on top of the scores, so repeated calls
on an unchanged set of articles are NOT guaranteed to return the same order.
"""

import math
import random
from typing import Dict, Iterable, List, Optional

from news_feed import database
from news_feed.constants import (
    BASE_SCORE,
    CATEGORY_DIVERSITY_TARGET,
    DEFAULT_DECAY_FACTOR,
    DEFAULT_EXPLORATION_RATE,
    EXPLORATION_BONUS_RANGE,
    EXPLORATION_STEP,
    HEALTHY_DIVERSITY,
    HIGH_ENGAGEMENT,
    KEYWORD_DIVERSITY_TARGET,
    LOW_ENGAGEMENT,
    MAX_EXPLORATION_RATE,
    MIN_EXPLORATION_RATE,
    MODERATE_DIVERSITY,
    NEGATIVE_RANKING_DELTA,
    NOVEL_KEYWORD_SCALE,
    NOVEL_KEYWORD_STDDEV,
    POSITIVE_RANKING_DELTA,
    PREFERENCE_DELTA,
    PREFERENCE_SCALE,
    PREFERENCE_STDDEV_SCALE,
    RANK_JITTER,
    SOURCE_DIVERSITY_TARGET,
)
from news_feed.models import (
    Article,
    DiversityReport,
    FilterBubbleStatus,
    UserPreference,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def normalize_keyword(keyword: str) -> str:
    return keyword.strip().lower()


def unique_keywords(keywords: Iterable[str]) -> List[str]:
    """Normalized keywords in first-seen order, without repeats or blanks."""
    seen = []
    for keyword in keywords:
        key = normalize_keyword(keyword)
        if key and key not in seen:
            seen.append(key)
    return seen


def updated_preference(
    preference: UserPreference,
    positive: bool,
    decay_factor: float = DEFAULT_DECAY_FACTOR,
) -> UserPreference:
    """
    Apply one feedback event to a preference.

    The old weight is discounted by decay_factor before the new +/- delta is
    added, so recent feedback outweighs old feedback and repeated feedback
    in one direction converges towards +/-1. Confidence closes a
    (1 - decay_factor) share of its remaining gap to 1 on every event.
    """
    delta = PREFERENCE_DELTA if positive else -PREFERENCE_DELTA
    weight = max(-1.0, min(1.0, decay_factor * preference.weight + delta))
    confidence = min(1.0, 1.0 - decay_factor * (1.0 - preference.confidence))
    return UserPreference(
        keyword=preference.keyword,
        weight=weight,
        confidence=max(preference.confidence, confidence),
        last_updated=preference.last_updated,
    )


def filter_bubble_status(diversity: float) -> FilterBubbleStatus:
    if diversity > HEALTHY_DIVERSITY:
        return FilterBubbleStatus.HEALTHY
    if diversity > MODERATE_DIVERSITY:
        return FilterBubbleStatus.MODERATE
    return FilterBubbleStatus.NARROW


class RecommendationEngine:
    """
    Scores and ranks articles, and learns from thumbs up/down feedback.

    Args:
        exploration_rate: Probability of adding a flat exploration bonus to
            a score. Adaptation keeps it within [0.05, 0.25].
        decay_factor: Discount applied to a preference's old weight on
            each new feedback event.
        rng: Random source, injectable for reproducible tests.
    """

    def __init__(
        self,
        exploration_rate: float = DEFAULT_EXPLORATION_RATE,
        decay_factor: float = DEFAULT_DECAY_FACTOR,
        rng: Optional[random.Random] = None,
    ):
        if not 0.0 <= exploration_rate <= 1.0:
            raise ValueError(f"exploration_rate must be in [0, 1], got {exploration_rate}")
        if not 0.0 < decay_factor <= 1.0:
            raise ValueError(f"decay_factor must be in (0, 1], got {decay_factor}")
        self.exploration_rate = exploration_rate
        self.decay_factor = decay_factor
        self.rng = rng or random.Random()

    # Sampling

    def sample_normal(self, mean: float, std_dev: float) -> float:
        """Draw from N(mean, std_dev^2) with the Box-Muller transform."""
        u1 = 1.0 - self.rng.random()  # (0, 1]
        u2 = self.rng.random()  # [0, 1)
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + z * std_dev

    def should_explore(self) -> bool:
        return self.rng.random() < self.exploration_rate

    # Scoring

    @staticmethod
    def load_preferences() -> Dict[str, UserPreference]:
        return {normalize_keyword(p.keyword): p for p in database.get_user_preferences()}

    def score(
        self,
        article: Article,
        preferences: Optional[Dict[str, UserPreference]] = None,
    ) -> float:
        """
        Sample a relevance score in [0, 1] for an article.

        Args:
            article: The article to score.
            preferences: Preferences keyed by normalized keyword. Loaded from
                the database when not given.
        """
        if preferences is None:
            preferences = self.load_preferences()

        score = BASE_SCORE
        for keyword in article.keywords:
            preference = preferences.get(normalize_keyword(keyword))
            if preference is not None:
                std_dev = (1.0 - preference.confidence) * PREFERENCE_STDDEV_SCALE
                score += self.sample_normal(preference.weight, std_dev) * PREFERENCE_SCALE
            else:
                score += self.sample_normal(0.0, NOVEL_KEYWORD_STDDEV) * NOVEL_KEYWORD_SCALE

        if self.should_explore():
            score += self.rng.uniform(*EXPLORATION_BONUS_RANGE)

        return max(0.0, min(1.0, score))

    def rank(
        self,
        articles: List[Article],
        preferences: Optional[Dict[str, UserPreference]] = None,
    ) -> List[Article]:
        """
        Score every article and order them best first.

        Each article's relevance_score is set to its freshly sampled score.
        The sort key adds uniform jitter in [-0.05, 0.05], so the order is
        intentionally not stable across calls.
        """
        if preferences is None:
            preferences = self.load_preferences()

        keyed = []
        for article in articles:
            article.relevance_score = self.score(article, preferences)
            jitter = self.rng.uniform(-RANK_JITTER, RANK_JITTER)
            keyed.append((article.relevance_score + jitter, article))

        keyed.sort(key=lambda pair: pair[0], reverse=True)
        return [article for _, article in keyed]

    def rescore_stored_articles(self, limit: int = 200) -> List[Article]:
        """Re-rank the stored working set and persist the new scores."""
        articles = database.list_articles(limit=limit)
        ranked = self.rank(articles)
        database.update_relevance_scores(
            {article.id: article.relevance_score for article in ranked if article.id is not None}
        )
        logger.info(f"Re-scored {len(ranked)} articles")
        return ranked

    # Learning

    def on_feedback(self, article: Article, positive: bool) -> List[UserPreference]:
        """
        Learn from a thumbs up (positive=True) or thumbs down.

        Updates every keyword's counters and preference, and nudges the
        owning source's ranking (+0.02 up, -0.01 down, clamped to [0, 1]).

        Returns the updated preferences.
        """
        keywords = unique_keywords(article.keywords)

        for keyword in keywords:
            database.upsert_keyword_stat(keyword, positive)

        delta = POSITIVE_RANKING_DELTA if positive else NEGATIVE_RANKING_DELTA
        database.adjust_source_ranking(article.source_id, delta)

        updated = [
            database.update_user_preference(
                keyword,
                lambda pref: updated_preference(pref, positive, self.decay_factor),
            )
            for keyword in keywords
        ]
        logger.info(
            f"{'👍' if positive else '👎'} feedback on '{article.title[:50]}': "
            f"{len(keywords)} keywords updated"
        )
        return updated

    def adjust_exploration_rate(self, engagement_rate: float) -> float:
        """Explore more when the user engages a lot, less when they rarely do."""
        if engagement_rate > HIGH_ENGAGEMENT:
            self.exploration_rate = min(MAX_EXPLORATION_RATE, self.exploration_rate + EXPLORATION_STEP)
        elif engagement_rate < LOW_ENGAGEMENT:
            self.exploration_rate = max(MIN_EXPLORATION_RATE, self.exploration_rate - EXPLORATION_STEP)
        return self.exploration_rate

    # Diversity

    @staticmethod
    def diversity(articles: List[Article]) -> float:
        """Average of keyword, category and source variety, in [0, 1]. 0 for no articles."""
        return RecommendationEngine.diversity_report(articles).score

    @staticmethod
    def diversity_report(articles: List[Article]) -> DiversityReport:
        if not articles:
            return DiversityReport(score=0.0, status=FilterBubbleStatus.NARROW)

        all_keywords = unique_keywords(
            keyword for article in articles for keyword in article.keywords
        )
        all_categories = {category for article in articles for category in article.categories}
        all_sources = {article.source_id for article in articles}

        keyword_diversity = min(1.0, len(all_keywords) / KEYWORD_DIVERSITY_TARGET)
        category_diversity = min(1.0, len(all_categories) / CATEGORY_DIVERSITY_TARGET)
        source_diversity = min(1.0, len(all_sources) / SOURCE_DIVERSITY_TARGET)
        score = (keyword_diversity + category_diversity + source_diversity) / 3.0

        return DiversityReport(
            score=score,
            status=filter_bubble_status(score),
            unique_keywords=len(all_keywords),
            unique_categories=len(all_categories),
            unique_sources=len(all_sources),
        )

    @staticmethod
    def filter_bubble_status(articles: List[Article]) -> FilterBubbleStatus:
        return RecommendationEngine.diversity_report(articles).status

    # Suggestions

    @staticmethod
    def exploration_suggestions() -> List[str]:
        """
        Topics that could break a filter bubble.

        Up to three barely-known keywords, then up to two strongly disliked
        ones worth revisiting.
        """
        preferences = database.get_user_preferences()

        low_confidence = [p.keyword for p in preferences if p.confidence < 0.3]
        strong_negatives = [
            f"Revisit: {p.keyword}"
            for p in preferences
            if p.weight < -0.5 and p.confidence > 0.5
        ]
        return low_confidence[:3] + strong_negatives[:2]
