"""
LLM-based feature extraction for articles: summary, keywords, categories
and sentiment.

Each completion call is independent and best-effort. When one fails, that
feature falls back to a local default and the article is still ingested.
"""

import json
import re
import string
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from llm.llm_util import get_llm_response
from llm.providers import CompletionError, CompletionProvider, LLMConfig, create_provider
from news_feed.constants import (
    CATEGORIES,
    CLARIFICATION_MARKERS,
    CLASSIFY_MAX_TOKENS,
    KEYWORDS_CONTENT_CHARS,
    KEYWORDS_MAX_TOKENS,
    MAX_FALLBACK_KEYWORDS,
    MAX_KEYWORD_LENGTH,
    MAX_KEYWORDS,
    PROMPTS_DIR,
    STOP_WORDS,
    SUMMARY_ARTIFACTS,
    SUMMARY_CONTENT_CHARS,
    SUMMARY_MAX_TOKENS,
    SUMMARY_REQUEST_MIN_CHARS,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)

SUMMARIZE_TEMPLATE = PROMPTS_DIR / "summarize.jinja2"
EXTRACT_KEYWORDS_TEMPLATE = PROMPTS_DIR / "extract_keywords.jinja2"
CLASSIFY_ARTICLE_TEMPLATE = PROMPTS_DIR / "classify_article.jinja2"

_PUNCTUATION = string.punctuation + "“”‘’«»…–—"


@dataclass
class ArticleFeatures:
    """Everything the extractor derives for one article."""
    summary: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    sentiment: float = 0.0


def needs_generated_summary(summary: Optional[str]) -> bool:
    """A summary is generated when the feed gave none, or a very long one."""
    return not summary or len(summary) > SUMMARY_REQUEST_MIN_CHARS


def extract_simple_keywords(title: str) -> List[str]:
    """Keywords from the title alone, for when the model gives none."""
    keywords = []
    for token in title.split():
        word = token.strip(_PUNCTUATION).lower()
        if len(word) <= 2 or word in STOP_WORDS:
            continue
        keywords.append(word.title())
        if len(keywords) >= MAX_FALLBACK_KEYWORDS:
            break
    return keywords


def clean_summary(response: str, title: str) -> str:
    """Strip conversational framing from a model summary.

    If the model asked for more information instead of summarizing, a
    summary is templated from the title.
    """
    cleaned = response
    for artifact in SUMMARY_ARTIFACTS:
        cleaned = cleaned.replace(artifact, "")
    cleaned = cleaned.strip()

    lowered = cleaned.lower()
    if not cleaned or any(marker.lower() in lowered for marker in CLARIFICATION_MARKERS):
        return f"Article discusses: {title}"
    return cleaned


def parse_keywords(response: str) -> List[str]:
    """Split a comma-separated keyword response into at most MAX_KEYWORDS entries."""
    keywords = []
    for part in response.replace("Keywords:", "").split(","):
        keyword = part.strip().strip("\"'`*.").strip()
        if keyword and len(keyword) < MAX_KEYWORD_LENGTH:
            keywords.append(keyword)
    return keywords[:MAX_KEYWORDS]


def _strip_code_fence(response: str) -> str:
    response = response.strip()
    if response.startswith("```"):
        # Remove markdown code block
        lines = response.split("\n")
        response = "\n".join(line for line in lines[1:] if not line.startswith("```"))
    return response


def parse_classification(response: str) -> Tuple[List[str], float]:
    """
    Parse a classification response.

    Returns (categories, sentiment). Unknown categories are dropped and the
    sentiment is clamped to [-1, 1].

    Raises:
        ValueError: if the response is not the expected JSON object.
    """
    text = _strip_code_fence(response)
    try:
        result = json.loads(text)
    except json.JSONDecodeError:
        # Models sometimes wrap the object in prose
        match = re.search(r"\{.*\}", text, flags=re.DOTALL)
        if not match:
            raise ValueError(f"No JSON object in classification response: {text[:100]}")
        result = json.loads(match.group(0))

    if not isinstance(result, dict):
        raise ValueError("Classification response is not a JSON object")

    raw_categories = result.get("categories", [])
    if not isinstance(raw_categories, list):
        raise ValueError("categories is not a list")
    categories = []
    for category in raw_categories:
        if not isinstance(category, str):
            continue
        category = category.strip().lower()
        if category in CATEGORIES and category not in categories:
            categories.append(category)

    sentiment = result.get("sentiment", 0.0)
    if isinstance(sentiment, bool) or not isinstance(sentiment, (int, float)):
        raise ValueError(f"sentiment is not a number: {sentiment!r}")
    return categories, max(-1.0, min(1.0, float(sentiment)))


class FeatureExtractor:
    """Derives article features through a text-completion provider."""

    def __init__(self, provider: CompletionProvider):
        self.provider = provider

    def summarize(self, title: str, content: str) -> Optional[str]:
        """Ask for a 1-2 sentence summary. Returns None if the call fails."""
        article_content = content[:SUMMARY_CONTENT_CHARS] if content else title
        try:
            response = get_llm_response(
                self.provider,
                SUMMARIZE_TEMPLATE,
                {"title": title, "content": article_content},
                SUMMARY_MAX_TOKENS,
            )
        except CompletionError as e:
            logger.warning(f"Summary unavailable for '{title[:50]}': {e}")
            return None
        return clean_summary(response, title)

    def extract_keywords(self, title: str, content: str) -> List[str]:
        """Ask for keywords, falling back to the title tokenizer."""
        article_content = content[:KEYWORDS_CONTENT_CHARS] if content else title
        try:
            response = get_llm_response(
                self.provider,
                EXTRACT_KEYWORDS_TEMPLATE,
                {"title": title, "content": article_content},
                KEYWORDS_MAX_TOKENS,
            )
        except CompletionError as e:
            logger.warning(f"Keyword extraction failed for '{title[:50]}': {e}")
            return extract_simple_keywords(title)

        keywords = parse_keywords(response)
        return keywords if keywords else extract_simple_keywords(title)

    def classify(self, title: str, content: str) -> Tuple[List[str], float]:
        """Ask for categories and sentiment. Returns ([], 0.0) on any failure."""
        try:
            response = get_llm_response(
                self.provider,
                CLASSIFY_ARTICLE_TEMPLATE,
                {
                    "title": title,
                    "content": (content or "")[:KEYWORDS_CONTENT_CHARS],
                    "categories": CATEGORIES,
                },
                CLASSIFY_MAX_TOKENS,
            )
        except CompletionError as e:
            logger.warning(f"Classification failed for '{title[:50]}': {e}")
            return [], 0.0

        try:
            return parse_classification(response)
        except ValueError as e:
            logger.error(f"Failed to parse classification response: {e}")
            logger.error(f"Response was: {response}")
            return [], 0.0

    def extract(self, title: str, content: Optional[str], summarize: bool = True) -> ArticleFeatures:
        """
        Derive every feature for one article.

        Args:
            title: The article title.
            content: Body or feed summary text, may be empty.
            summarize: Whether to request a generated summary.

        Returns:
            ArticleFeatures; never raises for provider failures.
        """
        content = content or ""
        summary = self.summarize(title, content) if summarize else None
        keywords = self.extract_keywords(title, content)
        categories, sentiment = self.classify(title, content)

        logger.info(
            f"Enriched '{title[:50]}': {len(keywords)} keywords, "
            f"categories={categories}, sentiment={sentiment:.2f}"
        )
        return ArticleFeatures(
            summary=summary,
            keywords=keywords,
            categories=categories,
            sentiment=sentiment,
        )


def build_feature_extractor(config: LLMConfig = None) -> FeatureExtractor:
    """Build an extractor for the configured provider.

    Raises ConfigurationError (or MissingCredentialError) if the provider
    cannot be built. This is the one enrichment failure that reaches callers.
    """
    return FeatureExtractor(create_provider(config))
