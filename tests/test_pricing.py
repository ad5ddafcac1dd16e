from decimal import Decimal

import pytest

from claude_tokens.models import ModelUsage
from claude_tokens.pricing import (
    DEFAULT_PRICING,
    ModelPricing,
    PricingTable,
    estimate_cost,
    estimate_output_cost,
    pricing_for,
    short_model_name,
)

MTOK = Decimal(1_000_000)

LIST_PRICES = {
    "claude-opus-4-6": ("15", "75", "1.5", "18.75"),
    "claude-opus-4-5-20251101": ("15", "75", "1.5", "18.75"),
    "claude-sonnet-4-5-20250929": ("3", "15", "0.3", "3.75"),
    "claude-haiku-4-5-20251001": ("0.8", "4", "0.08", "1"),
}


@pytest.mark.parametrize("model_id", sorted(LIST_PRICES))
def test_known_models_use_exact_rate_arithmetic(model_id):
    usage = ModelUsage(
        input_tokens=123_457,
        output_tokens=98_765,
        cache_read_tokens=4_321_000,
        cache_creation_tokens=55_555,
    )
    inp, out, read, write = (Decimal(price) / MTOK for price in LIST_PRICES[model_id])
    expected = 123_457 * inp + 98_765 * out + 4_321_000 * read + 55_555 * write
    assert estimate_cost(model_id, usage) == expected


def test_sonnet_scenario_costs_ten_fifty():
    usage = ModelUsage(input_tokens=1_000_000, output_tokens=500_000)
    cost = estimate_cost("claude-sonnet-4-5-20250929", usage)
    assert cost == Decimal("10.50")
    assert isinstance(cost, Decimal)


def test_unknown_model_uses_fallback():
    assert pricing_for("gpt-4o") is DEFAULT_PRICING.fallback
    assert pricing_for("") is DEFAULT_PRICING.fallback


def test_fallback_is_sonnet_priced():
    assert DEFAULT_PRICING.fallback == pricing_for("claude-sonnet-4-5-20250929")


def test_model_containing_a_key_matches_partially():
    opus = pricing_for("claude-opus-4-6")
    assert pricing_for("claude-opus-4-6-20260301") is opus


def test_key_containing_model_matches_partially():
    haiku = pricing_for("claude-haiku-4-5-20251001")
    assert pricing_for("claude-haiku-4-5") is haiku
    assert pricing_for("claude-haiku-4-5") is not DEFAULT_PRICING.fallback


def test_partial_match_is_case_insensitive():
    haiku = pricing_for("claude-haiku-4-5-20251001")
    assert pricing_for("CLAUDE-HAIKU-4-5-20251001") is haiku


def test_partial_match_first_table_entry_wins():
    first = ModelPricing.per_million("1", "1", "1", "1")
    second = ModelPricing.per_million("2", "2", "2", "2")
    table = PricingTable.from_items(
        [("opus", first), ("claude-opus", second)],
        fallback=ModelPricing.per_million("9", "9", "9", "9"),
    )
    assert table.pricing_for("claude-opus-x") is first
    assert table.pricing_for("claude-opus") is second


def test_injected_table_is_used():
    cheap = ModelPricing.per_million("1", "2", "0", "0")
    table = PricingTable.from_items([("custom-model", cheap)], fallback=cheap)
    usage = ModelUsage(input_tokens=1_000_000, output_tokens=1_000_000)
    assert estimate_cost("custom-model", usage, table) == Decimal("3")


def test_output_cost_uses_output_rate_only():
    assert estimate_output_cost("claude-opus-4-6", 20_000) == Decimal("1.5")


def test_negative_rates_are_rejected():
    with pytest.raises(ValueError):
        ModelPricing(Decimal("-1"), Decimal(0), Decimal(0), Decimal(0))


@pytest.mark.parametrize(
    "model_id, expected",
    [
        ("claude-opus-4-6", "Opus 4.6"),
        ("claude-opus-4-5-20251101", "Opus 4.5"),
        ("claude-sonnet-4-5-20250929", "Sonnet 4.5"),
        ("claude-haiku-4-5-20251001", "Haiku 4.5"),
        ("claude-3-opus-20240229", "Opus"),
        ("claude-sonnet-4-20250514", "Sonnet"),
        ("claude-3-5-haiku-20241022", "Haiku"),
        ("gpt-4o", "gpt-4o"),
    ],
)
def test_short_model_name(model_id, expected):
    assert short_model_name(model_id) == expected
