"""
Default source catalog and fetch scheduling.
"""

import time
from pathlib import Path
from typing import List, Optional

import yaml

from news_feed.constants import DEFAULT_FETCH_INTERVAL_MINUTES, DEFAULT_SOURCES_PATH
from news_feed.database import seed_default_sources
from news_feed.models import Source, SourceType
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def load_default_sources(config_path: Path = DEFAULT_SOURCES_PATH) -> List[Source]:
    """Load the default source list from YAML."""
    if not config_path.exists():
        logger.warning(f"Source config not found at {config_path}")
        return []

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    sources = []
    for source_data in data.get("sources", []):
        try:
            source_type = SourceType(source_data.get("type", SourceType.FEED.value))
        except ValueError:
            logger.warning(f"Unknown source type for {source_data.get('name')}: {source_data.get('type')}")
            continue
        sources.append(Source(
            name=source_data["name"],
            source_type=source_type,
            url=source_data["url"],
            feed_url=source_data.get("feed_url"),
            fetch_interval_minutes=source_data.get(
                "fetch_interval_minutes", DEFAULT_FETCH_INTERVAL_MINUTES
            ),
        ))
    return sources


def ensure_default_sources(config_path: Path = DEFAULT_SOURCES_PATH) -> int:
    """Seed the default sources on first run. Returns how many were added."""
    added = seed_default_sources(load_default_sources(config_path))
    if added:
        logger.info(f"Seeded {added} default sources")
    return added


def is_source_due(source: Source, now: Optional[int] = None) -> bool:
    """A source is due if it was never fetched or its interval has passed."""
    if source.last_fetched_at is None:
        return True
    if now is None:
        now = int(time.time())
    return (now - source.last_fetched_at) >= source.fetch_interval_minutes * 60
