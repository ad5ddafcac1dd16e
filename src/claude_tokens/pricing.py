"""Per-token pricing and cost estimation for Claude models.

Rates are stored per token as :class:`~decimal.Decimal` so that summing many
model costs never drifts; rounding to cents happens only when a value is
formatted for display (see :func:`claude_tokens.utils.format_currency`).
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from .models import ModelUsage

PER_MILLION = Decimal(1_000_000)


@dataclass(frozen=True)
class ModelPricing:
    input_rate: Decimal
    output_rate: Decimal
    cache_read_rate: Decimal
    cache_write_rate: Decimal

    def __post_init__(self) -> None:
        for name in ("input_rate", "output_rate", "cache_read_rate", "cache_write_rate"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @classmethod
    def per_million(
        cls,
        input_rate: str,
        output_rate: str,
        cache_read_rate: str,
        cache_write_rate: str,
    ) -> "ModelPricing":
        """Build a pricing tuple from the usual dollars-per-MTok list prices."""

        return cls(
            input_rate=Decimal(input_rate) / PER_MILLION,
            output_rate=Decimal(output_rate) / PER_MILLION,
            cache_read_rate=Decimal(cache_read_rate) / PER_MILLION,
            cache_write_rate=Decimal(cache_write_rate) / PER_MILLION,
        )


@dataclass(frozen=True)
class PricingTable:
    """Ordered model-id → pricing mapping with a fallback for unknown ids.

    Order matters: partial matches are tried in table order and the first hit
    wins.
    """

    entries: Tuple[Tuple[str, ModelPricing], ...]
    fallback: ModelPricing

    @classmethod
    def from_items(
        cls, items: Iterable[Tuple[str, ModelPricing]], fallback: ModelPricing
    ) -> "PricingTable":
        return cls(entries=tuple(items), fallback=fallback)

    def exact(self, model_id: str) -> Optional[ModelPricing]:
        for key, pricing in self.entries:
            if key == model_id:
                return pricing
        return None

    def pricing_for(self, model_id: str) -> ModelPricing:
        if not model_id:
            return self.fallback
        pricing = self.exact(model_id)
        if pricing is not None:
            return pricing
        lowered = model_id.lower()
        for key, pricing in self.entries:
            key_lower = key.lower()
            if key_lower in lowered or lowered in key_lower:
                return pricing
        return self.fallback


_OPUS = ModelPricing.per_million("15", "75", "1.5", "18.75")
_SONNET = ModelPricing.per_million("3", "15", "0.3", "3.75")
_HAIKU = ModelPricing.per_million("0.8", "4", "0.08", "1")

DEFAULT_PRICING = PricingTable.from_items(
    [
        ("claude-opus-4-6", _OPUS),
        ("claude-opus-4-5-20251101", _OPUS),
        ("claude-sonnet-4-5-20250929", _SONNET),
        ("claude-haiku-4-5-20251001", _HAIKU),
    ],
    # Unknown models are priced as the mid-tier family.
    fallback=_SONNET,
)


def pricing_for(model_id: str, table: PricingTable = DEFAULT_PRICING) -> ModelPricing:
    return table.pricing_for(model_id)


def estimate_cost(
    model_id: str, usage: ModelUsage, table: PricingTable = DEFAULT_PRICING
) -> Decimal:
    pricing = table.pricing_for(model_id)
    return (
        usage.input_tokens * pricing.input_rate
        + usage.output_tokens * pricing.output_rate
        + usage.cache_read_tokens * pricing.cache_read_rate
        + usage.cache_creation_tokens * pricing.cache_write_rate
    )


def estimate_output_cost(
    model_id: str, output_tokens: int, table: PricingTable = DEFAULT_PRICING
) -> Decimal:
    return output_tokens * table.pricing_for(model_id).output_rate


_VERSIONED_NAMES = (
    ("opus-4-6", "Opus 4.6"),
    ("opus-4-5", "Opus 4.5"),
    ("sonnet-4-5", "Sonnet 4.5"),
    ("haiku-4-5", "Haiku 4.5"),
)
_FAMILY_NAMES = (
    ("opus", "Opus"),
    ("sonnet", "Sonnet"),
    ("haiku", "Haiku"),
)


def short_model_name(model_id: str) -> str:
    lowered = model_id.lower()
    for token, name in _VERSIONED_NAMES + _FAMILY_NAMES:
        if token in lowered:
            return name
    return model_id


__all__ = [
    "DEFAULT_PRICING",
    "ModelPricing",
    "PricingTable",
    "estimate_cost",
    "estimate_output_cost",
    "pricing_for",
    "short_model_name",
]
