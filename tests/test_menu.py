from datetime import datetime, timedelta, timezone
from decimal import Decimal

from conftest import TODAY

from claude_tokens.menu import DEFAULT_TITLE, MenuLine, build_menu, status_title
from claude_tokens.models import (
    AllTimeSummary,
    ModelSummary,
    ProjectSummary,
    TodaySummary,
    TokenSummary,
    UsageInfo,
)


def make_summary(**overrides):
    values = dict(
        display_date=TODAY,
        today=TodaySummary(
            message_count=1234, session_count=3, tool_call_count=7, estimated_cost_usd=Decimal("1.005")
        ),
        all_time=AllTimeSummary(messages=50_000, sessions=120, estimated_cost_usd=Decimal("987.654")),
    )
    values.update(overrides)
    return TokenSummary(**values)


def titles(entries):
    return [entry.title if entry is not None else None for entry in entries]


def test_status_title():
    assert status_title(None) == DEFAULT_TITLE
    assert status_title(42) == "42%"
    assert status_title(130) == "100%"
    assert status_title(-3) == "0%"


def test_minimal_menu():
    assert titles(build_menu(make_summary())) == [
        "Today (Feb 14)",
        None,
        "  Cost: ~$1.01",
        "  Messages: 1,234",
        "  Sessions: 3",
        "  Tool Calls: 7",
        None,
        "All Time",
        "  Cost: ~$987.65",
        "  Messages: 50,000",
        "  Sessions: 120",
    ]


def test_exact_today_cost_has_no_tilde():
    entries = build_menu(make_summary(today_cost_is_estimate=False))
    assert entries[2].title == "  Cost: $1.01"


def test_models_and_projects_are_submenus():
    summary = make_summary(
        models=(
            ModelSummary(
                model_id="claude-opus-4-6",
                short_name="Opus 4.6",
                input_tokens=100_000,
                output_tokens=2_500_000,
                cache_read_tokens=10_000_000,
                cache_creation_tokens=1_000_000,
                estimated_cost_usd=Decimal("400.25"),
            ),
        ),
        projects=(ProjectSummary(full_path="/Users/dev/beta", short_name="beta", last_cost=Decimal("12")),),
    )
    entries = build_menu(summary)
    by_title = {entry.title: entry for entry in entries if entry is not None}

    models = by_title["Models"]
    assert models.children == (
        MenuLine(
            "Opus 4.6",
            (
                MenuLine("In: 100.0K  Out: 2.5M"),
                MenuLine("Cache R: 10.0M  W: 1.0M"),
                MenuLine("~$400.25"),
            ),
        ),
    )
    assert by_title["Projects"].children == (MenuLine("beta  $12.00"),)


def test_usage_block_appears_when_known():
    now = datetime(2026, 2, 14, 12, tzinfo=timezone.utc)
    usage = UsageInfo(
        tokens_limit=400_000,
        tokens_remaining=300_000,
        tokens_reset=now + timedelta(minutes=30),
        requests_limit=4000,
        requests_remaining=3999,
    )
    result = titles(build_menu(make_summary(), usage, now=now))
    start = result.index("API Rate Limits")
    assert result[start : start + 5] == [
        "API Rate Limits",
        "  Tokens: 300.0K / 400.0K (75%)",
        "  Tokens reset in 30m",
        "  Requests: 3,999 / 4,000",
        None,
    ]
