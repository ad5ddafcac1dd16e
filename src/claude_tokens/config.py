from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .paths import default_global_config_path, default_stats_cache_path
from .pricing import DEFAULT_PRICING, PricingTable
from .summary import TodayCostStrategy

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(
    os.getenv(
        "CLAUDE_TOKENS_CONFIG",
        Path.home() / ".config" / "claude_tokens" / "config.json",
    )
)
API_KEY_ENV = "ANTHROPIC_API_KEY"

MIN_USAGE_POLL_INTERVAL = 10.0

DEFAULT_CONFIG = {
    "stats_cache_path": None,
    "claude_config_path": None,
    "api_key": None,
    "usage_poll_interval": 60.0,
    "debounce_seconds": 0.5,
    "fallback_poll_seconds": 60.0,
    "today_cost_strategy": TodayCostStrategy.DAILY_OUTPUT.value,
}


@dataclass(frozen=True)
class TokensConfig:
    stats_cache_path: Path = field(default_factory=default_stats_cache_path)
    claude_config_path: Path = field(default_factory=default_global_config_path)
    api_key: Optional[str] = None
    usage_poll_interval: float = DEFAULT_CONFIG["usage_poll_interval"]
    debounce_seconds: float = DEFAULT_CONFIG["debounce_seconds"]
    fallback_poll_seconds: float = DEFAULT_CONFIG["fallback_poll_seconds"]
    today_cost_strategy: TodayCostStrategy = TodayCostStrategy.DAILY_OUTPUT
    pricing: PricingTable = DEFAULT_PRICING

    @property
    def effective_poll_interval(self) -> float:
        return max(self.usage_poll_interval, MIN_USAGE_POLL_INTERVAL)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokensConfig":
        stats_raw = data.get("stats_cache_path")
        config_raw = data.get("claude_config_path")
        stats_path = (
            Path(stats_raw).expanduser()
            if isinstance(stats_raw, str) and stats_raw
            else default_stats_cache_path()
        )
        config_path = (
            Path(config_raw).expanduser()
            if isinstance(config_raw, str) and config_raw
            else default_global_config_path()
        )
        api_key = data.get("api_key") or os.getenv(API_KEY_ENV) or None
        usage_poll_interval = _float_setting(data, "usage_poll_interval")
        debounce_seconds = _float_setting(data, "debounce_seconds")
        fallback_poll_seconds = _float_setting(data, "fallback_poll_seconds")
        strategy_raw = data.get(
            "today_cost_strategy", DEFAULT_CONFIG["today_cost_strategy"]
        )
        try:
            strategy = TodayCostStrategy(strategy_raw)
        except ValueError:
            logger.info("unknown today_cost_strategy %r, using default", strategy_raw)
            strategy = TodayCostStrategy.DAILY_OUTPUT

        return cls(
            stats_cache_path=stats_path,
            claude_config_path=config_path,
            api_key=api_key if isinstance(api_key, str) else None,
            usage_poll_interval=usage_poll_interval,
            debounce_seconds=debounce_seconds,
            fallback_poll_seconds=fallback_poll_seconds,
            today_cost_strategy=strategy,
        )

    def to_dict(self) -> Dict[str, Any]:
        # api_key is never serialised.
        return {
            "stats_cache_path": str(self.stats_cache_path),
            "claude_config_path": str(self.claude_config_path),
            "usage_poll_interval": self.usage_poll_interval,
            "debounce_seconds": self.debounce_seconds,
            "fallback_poll_seconds": self.fallback_poll_seconds,
            "today_cost_strategy": self.today_cost_strategy.value,
        }


def _float_setting(data: Dict[str, Any], key: str) -> float:
    default = float(DEFAULT_CONFIG[key])
    try:
        value = float(data.get(key, default))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def load_config(path: Optional[Path] = None) -> TokensConfig:
    path = path or CONFIG_PATH
    data: Dict[str, Any] = {}
    if path.exists():
        try:
            with path.open("r", encoding="utf-8") as handle:
                loaded = json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:
            logger.info("ignoring unreadable settings file %s: %s", path, exc)
            loaded = {}
        if isinstance(loaded, dict):
            data = loaded
    return TokensConfig.from_dict(data)


__all__ = ["CONFIG_PATH", "MIN_USAGE_POLL_INTERVAL", "TokensConfig", "load_config"]
