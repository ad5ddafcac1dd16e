import json
from datetime import date
from pathlib import Path

import pytest

from claude_tokens.config import TokensConfig

TODAY = date(2026, 2, 14)


def write_json(path: Path, payload) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def stats_payload():
    return {
        "version": 2,
        "lastComputedDate": "2026-02-14",
        "dailyActivity": [
            {"date": "2026-02-12", "messageCount": 40, "sessionCount": 2, "toolCallCount": 12},
            {"date": "2026-02-14", "messageCount": 10, "sessionCount": 1, "toolCallCount": 3},
        ],
        "dailyModelTokens": [
            {"date": "2026-02-14", "tokensByModel": {"claude-opus-4-6": 20000}},
        ],
        "modelUsage": {
            "claude-sonnet-4-5-20250929": {
                "inputTokens": 1_000_000,
                "outputTokens": 500_000,
                "cacheReadInputTokens": 0,
                "cacheCreationInputTokens": 0,
                "webSearchRequests": 0,
                "costUSD": 0,
                "contextWindow": 0,
                "maxOutputTokens": 0,
            },
            "claude-opus-4-6": {
                "inputTokens": 100_000,
                "outputTokens": 200_000,
                "cacheReadInputTokens": 10_000_000,
                "cacheCreationInputTokens": 1_000_000,
            },
        },
        "totalSessions": 12,
        "totalMessages": 100,
        "longestSession": {
            "sessionId": "abc",
            "duration": 3600000,
            "messageCount": 80,
            "timestamp": "2026-02-01T10:00:00Z",
        },
        "firstSessionDate": "2025-11-01T09:00:00Z",
        "hourCounts": {"9": 30, "14": 70},
    }


@pytest.fixture
def config_payload():
    return {
        "numStartups": 12,
        "theme": "dark",
        "projects": {
            "/Users/dev/alpha": {"lastCost": 5.0, "lastSessionId": "s-1"},
            "/Users/dev/beta/": {"lastCost": 12.0, "lastTotalInputTokens": 4000},
            "/Users/dev/gamma": {"allowedTools": []},
        },
    }


@pytest.fixture
def data_files(tmp_path, stats_payload, config_payload):
    stats_path = write_json(tmp_path / ".claude" / "stats-cache.json", stats_payload)
    config_path = write_json(tmp_path / ".claude.json", config_payload)
    return stats_path, config_path


@pytest.fixture
def tokens_config(tmp_path, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    return TokensConfig(
        stats_cache_path=tmp_path / ".claude" / "stats-cache.json",
        claude_config_path=tmp_path / ".claude.json",
    )
