"""Tests for the default source catalog and due checks."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine

from news_feed import db_engine
from news_feed.constants import DEFAULT_SOURCES_PATH
from news_feed.models import Source, SourceType
from news_feed.orm_models import Base
from news_feed.source_registry import ensure_default_sources, is_source_due, load_default_sources


@pytest.fixture
def temp_db():
    """Create a temporary in-memory database for testing."""
    test_engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(test_engine)
    db_engine.set_engine(test_engine)
    yield test_engine
    db_engine.reset_engine()


class TestLoadDefaultSources:
    """Tests for load_default_sources."""

    def test_shipped_catalog(self):
        sources = load_default_sources(DEFAULT_SOURCES_PATH)

        names = [s.name for s in sources]
        assert names == [
            "Hacker News",
            "The Verge AI",
            "Ars Technica AI",
            "MIT Tech Review AI",
            "Papers with Code",
        ]
        assert sources[-1].source_type == SourceType.BENCHMARK
        assert all(s.feed_url for s in sources[:4])

    def test_load_valid_config(self, tmp_path: Path):
        config_file = tmp_path / "sources.yaml"
        config_file.write_text("""
sources:
  - name: "Researcher"
    type: person
    url: "https://person.example.com"
    fetch_interval_minutes: 240
  - name: "Blog"
    type: website
    url: "https://blog.example.com"
""")
        sources = load_default_sources(config_file)

        assert len(sources) == 2
        assert sources[0].source_type == SourceType.PERSON
        assert sources[0].fetch_interval_minutes == 240
        assert sources[1].feed_url is None
        assert sources[1].fetch_interval_minutes == 60

    def test_unknown_type_skipped(self, tmp_path: Path):
        config_file = tmp_path / "sources.yaml"
        config_file.write_text("""
sources:
  - name: "Podcast"
    type: podcast
    url: "https://pod.example.com"
""")
        assert load_default_sources(config_file) == []

    def test_load_missing_config(self, tmp_path: Path):
        assert load_default_sources(tmp_path / "nonexistent.yaml") == []

    def test_load_empty_config(self, tmp_path: Path):
        config_file = tmp_path / "sources.yaml"
        config_file.write_text("")
        assert load_default_sources(config_file) == []


class TestEnsureDefaultSources:

    def test_seeds_once(self, temp_db):
        from news_feed.database import get_all_sources

        assert ensure_default_sources() == 5
        assert ensure_default_sources() == 0
        assert len(get_all_sources()) == 5


class TestIsSourceDue:

    def _source(self, last_fetched_at, interval=60):
        return Source(
            name="S",
            source_type=SourceType.FEED,
            url="https://s.example.com",
            last_fetched_at=last_fetched_at,
            fetch_interval_minutes=interval,
        )

    def test_never_fetched(self):
        assert is_source_due(self._source(None), now=1000)

    def test_within_interval(self):
        assert not is_source_due(self._source(1000), now=1000 + 59 * 60)

    def test_interval_elapsed(self):
        assert is_source_due(self._source(1000), now=1000 + 60 * 60)

    def test_custom_interval(self):
        assert not is_source_due(self._source(0, interval=240), now=3 * 3600)
