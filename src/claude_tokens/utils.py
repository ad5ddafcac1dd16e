from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

CENTS = Decimal("0.01")

# fromisoformat before 3.11 only takes 3 or 6 fractional digits.
_FRACTION = re.compile(r"\.(\d+)")

_TOKEN_UNITS = ((1_000_000_000, "B"), (1_000_000, "M"), (1000, "K"))
_RELATIVE_UNITS = ((86400, "d"), (3600, "h"), (60, "m"))


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp; naive values are taken as UTC."""

    if not value or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_tokens(tokens: int) -> str:
    tokens = max(int(tokens), 0)
    for size, suffix in _TOKEN_UNITS:
        if tokens >= size:
            return f"{tokens / size:.1f}{suffix}"
    return f"{tokens:,}"


def format_count(value: int) -> str:
    return f"{int(value):,}"


def format_currency(value: Optional[Decimal]) -> str:
    if value is None:
        return "$0.00"
    amount = Decimal(value)
    try:
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many digits for the context precision; show it unrounded.
        return f"${amount:,f}"
    return f"${amount:,}"


def format_relative(dt: Optional[datetime], now: Optional[datetime] = None) -> str:
    if dt is None:
        return "unknown"
    now = now or datetime.now(timezone.utc)
    seconds = (dt - now).total_seconds()
    future = seconds > 0
    seconds = abs(seconds)
    if seconds < 60:
        return "in <1m" if future else "just now"
    for size, suffix in _RELATIVE_UNITS:
        if seconds >= size:
            amount = f"{int(seconds // size)}{suffix}"
            break
    return f"in {amount}" if future else f"{amount} ago"


__all__ = [
    "format_count",
    "format_currency",
    "format_relative",
    "format_tokens",
    "parse_timestamp",
]
