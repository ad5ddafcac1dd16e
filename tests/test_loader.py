import sys
from decimal import Decimal

import pytest
from conftest import write_json

from claude_tokens.loader import SnapshotLoader, SourceError, parse_project_configs, parse_usage_stats


def test_missing_files_are_unavailable_not_errors(tmp_path):
    loader = SnapshotLoader(tmp_path / "nope.json", tmp_path / "nada.json")
    result = loader.read_stats()
    assert result.error is SourceError.UNAVAILABLE
    assert result.value is None
    assert loader.load_stats() is None
    assert loader.load_project_configs() == {}


def test_malformed_json_is_reported_and_swallowed(tmp_path):
    stats_path = tmp_path / "stats-cache.json"
    stats_path.write_text('{"totalMessages": 3,', encoding="utf-8")
    loader = SnapshotLoader(stats_path, tmp_path / "missing.json")
    assert loader.read_stats().error is SourceError.MALFORMED
    assert loader.load_stats() is None


def test_non_object_document_is_malformed(tmp_path):
    config_path = write_json(tmp_path / ".claude.json", ["not", "an", "object"])
    loader = SnapshotLoader(tmp_path / "missing.json", config_path)
    assert loader.read_project_configs().error is SourceError.MALFORMED
    assert loader.load_project_configs() == {}


@pytest.mark.skipif(
    not hasattr(sys, "get_int_max_str_digits"),
    reason="interpreter has no integer string conversion limit",
)
def test_integer_literal_over_digit_limit_is_malformed(tmp_path):
    stats_path = tmp_path / "stats-cache.json"
    stats_path.write_text('{"totalMessages": ' + "9" * 5000 + "}", encoding="utf-8")
    loader = SnapshotLoader(stats_path, tmp_path / "missing.json")
    assert loader.read_stats().error is SourceError.MALFORMED
    assert loader.load_stats() is None


def test_deeply_nested_document_is_malformed(tmp_path):
    config_path = tmp_path / ".claude.json"
    depth = 100_000
    config_path.write_text('{"projects": ' + "[" * depth + "]" * depth + "}", encoding="utf-8")
    loader = SnapshotLoader(tmp_path / "missing.json", config_path)
    assert loader.read_project_configs().error is SourceError.MALFORMED
    assert loader.load_project_configs() == {}


def test_directory_in_place_of_file_is_unavailable(tmp_path):
    (tmp_path / "stats-cache.json").mkdir()
    loader = SnapshotLoader(tmp_path / "stats-cache.json", tmp_path / "missing.json")
    assert loader.read_stats().error is SourceError.UNAVAILABLE


def test_full_stats_document(data_files):
    stats_path, config_path = data_files
    stats = SnapshotLoader(stats_path, config_path).load_stats()

    assert stats.version == 2
    assert stats.total_messages == 100
    assert stats.total_sessions == 12
    assert [day.date for day in stats.daily_activity] == ["2026-02-12", "2026-02-14"]
    assert stats.daily_activity[1].tool_call_count == 3
    assert stats.daily_model_tokens[0].tokens_by_model == {"claude-opus-4-6": 20000}
    assert list(stats.model_usage) == ["claude-sonnet-4-5-20250929", "claude-opus-4-6"]
    opus = stats.model_usage["claude-opus-4-6"]
    assert opus.cache_read_tokens == 10_000_000
    assert opus.cache_creation_tokens == 1_000_000
    assert stats.longest_session.session_id == "abc"
    assert stats.longest_session.message_count == 80
    assert stats.first_session_date == "2025-11-01T09:00:00Z"
    assert stats.hour_counts == {9: 30, 14: 70}


def test_field_names_are_case_insensitive():
    stats = parse_usage_stats(
        {
            "TotalMessages": 7,
            "DAILYACTIVITY": [{"Date": "2026-01-01", "MESSAGECOUNT": 7, "sessioncount": 1}],
            "ModelUsage": {"claude-opus-4-6": {"InputTokens": 10, "CACHEREADINPUTTOKENS": 5}},
        }
    )
    assert stats.total_messages == 7
    assert stats.daily_activity[0].message_count == 7
    assert stats.daily_activity[0].session_count == 1
    assert stats.model_usage["claude-opus-4-6"].input_tokens == 10
    assert stats.model_usage["claude-opus-4-6"].cache_read_tokens == 5


def test_unknown_fields_ignored_and_missing_fields_default():
    stats = parse_usage_stats(
        {
            "somethingNew": {"nested": True},
            "dailyActivity": [{"date": "2026-01-01", "extra": 1}, "garbage", 4],
            "modelUsage": {"m": {"inputTokens": "1,234", "costUSD": 0.1, "outputTokens": None}},
            "hourCounts": {"noon": 3, "7": "2"},
        }
    )
    assert stats.version == 0
    assert stats.total_sessions == 0
    assert stats.longest_session is None
    assert stats.first_session_date is None
    assert len(stats.daily_activity) == 1
    assert stats.daily_activity[0].message_count == 0
    usage = stats.model_usage["m"]
    assert usage.input_tokens == 1234
    assert usage.output_tokens == 0
    assert usage.cost_usd == Decimal("0.1")
    assert stats.hour_counts == {7: 2}


def test_only_projects_with_cost_are_kept(data_files):
    stats_path, config_path = data_files
    projects = SnapshotLoader(stats_path, config_path).load_project_configs()

    assert set(projects) == {"/Users/dev/alpha", "/Users/dev/beta/"}
    assert projects["/Users/dev/alpha"].last_cost == Decimal("5.0")
    assert projects["/Users/dev/alpha"].last_session_id == "s-1"
    assert projects["/Users/dev/beta/"].last_total_input_tokens == 4000
    assert projects["/Users/dev/beta/"].last_total_output_tokens is None


def test_project_cost_key_is_case_insensitive_and_must_be_numeric():
    projects = parse_project_configs(
        {
            "projects": {
                "/a": {"LastCost": "3.25"},
                "/b": {"lastCost": "n/a"},
                "/c": {"lastCost": None},
                "/d": {
                    "lastCost": 1,
                    "lastModelUsage": {
                        "claude-opus-4-6": {"inputTokens": 5, "cacheReadInputTokens": 9, "costUSD": 0.25}
                    },
                },
            }
        }
    )
    assert set(projects) == {"/a", "/d"}
    assert projects["/a"].last_cost == Decimal("3.25")
    usage = projects["/d"].last_model_usage["claude-opus-4-6"]
    assert usage.input_tokens == 5
    assert usage.cache_read_tokens == 9
    assert usage.cost_usd == Decimal("0.25")


def test_config_without_projects_is_empty():
    assert parse_project_configs({"theme": "dark"}) == {}
    assert parse_project_configs({"projects": []}) == {}
