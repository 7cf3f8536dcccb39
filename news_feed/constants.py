"""
Constants for the news feed recommender.
"""

import os
from pathlib import Path

MODULE_ROOT = Path(__file__).parent

PROMPTS_DIR = MODULE_ROOT / "prompts"

DEFAULT_SOURCES_PATH = MODULE_ROOT / "data" / "default_sources.yaml"

DB_NAME = os.getenv("NEWS_FEED_DB", "news_feed.db")

# Item caps per fetch
MAX_FEED_ITEMS = 20
MAX_SCRAPED_ITEMS = 10
MAX_LEADERBOARD_ROWS = 10

DEFAULT_FETCH_INTERVAL_MINUTES = 60
DEFAULT_SOURCE_RANKING = 0.5
DEFAULT_RELEVANCE_SCORE = 0.5

# Structural selectors tried in order when scraping a page
ARTICLE_SELECTORS = ["article", ".post", ".article", ".news-item", "[class*='article']"]
TITLE_SELECTOR = "h1, h2, h3, .title"
SUMMARY_SELECTOR = "p, .summary, .excerpt"

# Feature extraction
SUMMARY_REQUEST_MIN_CHARS = 300
SUMMARY_MAX_TOKENS = 150
KEYWORDS_MAX_TOKENS = 50
CLASSIFY_MAX_TOKENS = 100
SUMMARY_CONTENT_CHARS = 2000
KEYWORDS_CONTENT_CHARS = 1000
MAX_KEYWORDS = 7
MAX_FALLBACK_KEYWORDS = 5
MAX_KEYWORD_LENGTH = 30

CATEGORIES = ("research", "product", "business", "policy", "tutorial", "opinion", "benchmark")

SUMMARY_ARTIFACTS = ("Summary:", "Here is", "Here's")
CLARIFICATION_MARKERS = ("no article", "please share", "Can you")

STOP_WORDS = {
    "the", "a", "an", "is", "are", "was", "were", "it", "its", "in", "on", "at",
    "to", "for", "of", "and", "or", "but", "with", "by", "from", "as", "be",
    "this", "that", "these", "those", "how", "what", "why", "when", "where", "who",
}

# Recommendation engine
BASE_SCORE = 0.5
PREFERENCE_SCALE = 0.15
PREFERENCE_STDDEV_SCALE = 0.2
NOVEL_KEYWORD_STDDEV = 0.3
NOVEL_KEYWORD_SCALE = 0.1
EXPLORATION_BONUS_RANGE = (0.1, 0.3)
RANK_JITTER = 0.05

DEFAULT_EXPLORATION_RATE = 0.15
MIN_EXPLORATION_RATE = 0.05
MAX_EXPLORATION_RATE = 0.25
EXPLORATION_STEP = 0.02
HIGH_ENGAGEMENT = 0.3
LOW_ENGAGEMENT = 0.1

DEFAULT_DECAY_FACTOR = 0.95
PREFERENCE_DELTA = 0.1
POSITIVE_RANKING_DELTA = 0.02
NEGATIVE_RANKING_DELTA = -0.01

# Diversity normalisers: unique keywords, categories, sources
KEYWORD_DIVERSITY_TARGET = 50
CATEGORY_DIVERSITY_TARGET = 7
SOURCE_DIVERSITY_TARGET = 10
HEALTHY_DIVERSITY = 0.7
MODERATE_DIVERSITY = 0.4

# Benchmark catalog
PAPERS_WITH_CODE_BENCHMARKS = {
    "MMLU": "https://paperswithcode.com/sota/multi-task-language-understanding-on-mmlu",
    "HumanEval": "https://paperswithcode.com/sota/code-generation-on-humaneval",
    "GSM8K": "https://paperswithcode.com/sota/arithmetic-reasoning-on-gsm8k",
    "MATH": "https://paperswithcode.com/sota/math-word-problem-solving-on-math",
    "HellaSwag": "https://paperswithcode.com/sota/sentence-completion-on-hellaswag",
    "ARC-Challenge": "https://paperswithcode.com/sota/common-sense-reasoning-on-arc-challenge",
    "WinoGrande": "https://paperswithcode.com/sota/common-sense-reasoning-on-winogrande",
    "TruthfulQA": "https://paperswithcode.com/sota/question-answering-on-truthfulqa",
}

OPEN_LLM_LEADERBOARD_API = (
    "https://datasets-server.huggingface.co/rows?dataset=open-llm-leaderboard%2Fresults"
    "&config=default&split=train&offset=0&length=20"
)
OPEN_LLM_LEADERBOARD_URL = "https://huggingface.co/spaces/HuggingFaceH4/open_llm_leaderboard"

# Column name in the leaderboard rows -> benchmark name we store it under
OPEN_LLM_LEADERBOARD_COLUMNS = {
    "Average ⬆️": "Open LLM Average",
    "MMLU": "MMLU (HF)",
    "HellaSwag": "HellaSwag (HF)",
    "ARC": "ARC (HF)",
}
