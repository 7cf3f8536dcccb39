"""Tests for leaderboard parsing and benchmark leader articles."""

from unittest.mock import patch

from news_feed.benchmarks import (
    fetch_benchmark_source,
    fetch_open_llm_leaderboard,
    fetch_papers_with_code_benchmarks,
    fetch_sota_table,
    make_leader_item,
    parse_leaderboard_table,
    parse_open_llm_leaderboard,
)
from news_feed.errors import FetchError
from news_feed.models import BenchmarkEntry, Source, SourceType

SOTA_URL = "https://paperswithcode.com/sota/mmlu"

SOTA_PAGE = """
<html><body>
<table>
  <thead><tr><th>Model</th><th>Score</th><th>Paper</th></tr></thead>
  <tbody>
    <tr><td>Model Alpha</td><td>91.2%</td><td>paper</td></tr>
    <tr><td>Model Beta</td><td>89.0</td><td>paper</td></tr>
    <tr><td>Too short</td><td>80.0</td></tr>
    <tr><td>Model Gamma</td><td>n/a</td><td>paper</td></tr>
    <tr><td>Model Delta</td><td>75.5%</td><td>paper</td></tr>
  </tbody>
</table>
</body></html>
"""


class TestParseLeaderboardTable:
    """Tests for SOTA table parsing."""

    def test_parses_valid_rows(self):
        entries = parse_leaderboard_table(SOTA_PAGE, "MMLU", SOTA_URL)

        assert [e.model_name for e in entries] == ["Model Alpha", "Model Beta", "Model Delta"]
        assert entries[0].score == 91.2
        assert entries[0].notes == "rank 1"
        assert entries[2].notes == "rank 5"
        assert all(e.benchmark_name == "MMLU" for e in entries)
        assert all(e.source_url == SOTA_URL for e in entries)

    def test_row_limit(self):
        rows = "".join(
            f"<tr><td>M{i}</td><td>{90 - i}</td><td>p</td></tr>" for i in range(15)
        )
        html = f"<table><tbody>{rows}</tbody></table>"

        assert len(parse_leaderboard_table(html, "X", SOTA_URL)) == 10

    def test_no_table(self):
        assert parse_leaderboard_table("<p>nothing</p>", "X", SOTA_URL) == []


class TestLeaderItem:
    """Tests for the synthesized leader article."""

    def test_fields(self):
        entry = BenchmarkEntry("MMLU", "Model Alpha", 91.234, recorded_at=100, source_url=SOTA_URL)

        item = make_leader_item(entry)

        assert item.title == "🏆 Model Alpha leads MMLU benchmark with 91.2%"
        assert item.url == f"{SOTA_URL}#leader-model-alpha"
        assert item.author == "Papers with Code"
        assert item.keywords == ["MMLU", "Model Alpha", "benchmark", "SOTA", "leaderboard"]
        assert item.categories == ["benchmark"]
        assert item.sentiment == 0.5
        assert item.relevance_score == 0.8

    def test_new_leader_new_url(self):
        a = make_leader_item(BenchmarkEntry("MMLU", "Model Alpha", 91.0, source_url=SOTA_URL))
        b = make_leader_item(BenchmarkEntry("MMLU", "Model Beta", 92.0, source_url=SOTA_URL))

        assert a.url != b.url


class TestFetchSota:
    """Tests for the Papers with Code catalog."""

    @patch("news_feed.benchmarks.fetch_bytes")
    def test_only_rank_one_becomes_article(self, mock_fetch):
        mock_fetch.return_value = SOTA_PAGE

        result = fetch_sota_table("MMLU", SOTA_URL)

        assert len(result.entries) == 3
        assert len(result.items) == 1
        assert "Model Alpha" in result.items[0].title

    @patch("news_feed.benchmarks.fetch_bytes")
    def test_failing_page_is_skipped(self, mock_fetch):
        def fake_fetch(url):
            if "broken" in url:
                raise FetchError("HTTP 500")
            return SOTA_PAGE

        mock_fetch.side_effect = fake_fetch

        result = fetch_papers_with_code_benchmarks({
            "MMLU": SOTA_URL,
            "Broken": "https://paperswithcode.com/sota/broken",
        })

        assert len(result.entries) == 3
        assert len(result.items) == 1

    @patch("news_feed.benchmarks.fetch_bytes")
    def test_benchmark_source_with_feed_url(self, mock_fetch):
        mock_fetch.return_value = SOTA_PAGE
        source = Source(
            name="Custom Board",
            source_type=SourceType.BENCHMARK,
            url="https://boards.example.com",
            feed_url="https://boards.example.com/table",
        )

        result = fetch_benchmark_source(source)

        mock_fetch.assert_called_once_with("https://boards.example.com/table")
        assert all(e.benchmark_name == "Custom Board" for e in result.entries)

    @patch("news_feed.benchmarks.fetch_bytes")
    def test_benchmark_source_without_feed_url(self, mock_fetch):
        source = Source(name="Papers with Code", source_type=SourceType.BENCHMARK, url="https://paperswithcode.com")

        result = fetch_benchmark_source(source)

        mock_fetch.assert_not_called()
        assert result.items == [] and result.entries == []


class TestOpenLLMLeaderboard:
    """Tests for the JSON rows API."""

    PAYLOAD = {
        "rows": [
            {"row": {"fullname": "org/model-a", "Average ⬆️": 75.1, "MMLU": 80.0,
                     "HellaSwag": 85.5, "ARC": "bad"}},
            {"row": {"MMLU": 70.0}},
            {"not_a_row": True},
        ]
    }

    def test_parse(self):
        entries = parse_open_llm_leaderboard(self.PAYLOAD)

        names = {(e.model_name, e.benchmark_name) for e in entries}
        assert ("org/model-a", "Open LLM Average") in names
        assert ("org/model-a", "MMLU (HF)") in names
        assert ("org/model-a", "HellaSwag (HF)") in names
        assert ("org/model-a", "ARC (HF)") not in names
        assert ("Unknown", "MMLU (HF)") in names
        assert len(entries) == 4

    @patch("news_feed.benchmarks.fetch_json")
    def test_failure_is_empty(self, mock_fetch):
        mock_fetch.side_effect = FetchError("timeout")

        result = fetch_open_llm_leaderboard()

        assert result.entries == []
        assert result.items == []
