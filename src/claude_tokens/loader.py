from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Generic, Optional, TypeVar

from .models import (
    DailyActivity,
    DailyModelTokens,
    LongestSession,
    ModelUsage,
    ProjectConfig,
    ProjectModelUsage,
    UsageStats,
)
from .paths import default_global_config_path, default_stats_cache_path

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SourceError(str, Enum):
    UNAVAILABLE = "unavailable"
    MALFORMED = "malformed"


@dataclass
class LoadResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[SourceError] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SnapshotLoader:
    """Best-effort reader for the stats cache and the global Claude config."""

    def __init__(
        self,
        stats_path: Optional[Path] = None,
        config_path: Optional[Path] = None,
    ):
        self.stats_path = stats_path or default_stats_cache_path()
        self.config_path = config_path or default_global_config_path()

    def read_stats(self) -> LoadResult[UsageStats]:
        result = _read_json_object(self.stats_path)
        if not result.ok:
            return LoadResult(error=result.error, detail=result.detail)
        try:
            stats = parse_usage_stats(result.value)
        except (TypeError, ValueError, AttributeError) as exc:
            logger.debug("stats cache %s rejected: %s", self.stats_path, exc)
            return LoadResult(error=SourceError.MALFORMED, detail=str(exc))
        return LoadResult(value=stats)

    def read_project_configs(self) -> LoadResult[Dict[str, ProjectConfig]]:
        result = _read_json_object(self.config_path)
        if not result.ok:
            return LoadResult(error=result.error, detail=result.detail)
        try:
            projects = parse_project_configs(result.value)
        except (TypeError, ValueError, AttributeError) as exc:
            logger.debug("global config %s rejected: %s", self.config_path, exc)
            return LoadResult(error=SourceError.MALFORMED, detail=str(exc))
        return LoadResult(value=projects)

    def load_stats(self) -> Optional[UsageStats]:
        return self.read_stats().value

    def load_project_configs(self) -> Dict[str, ProjectConfig]:
        return self.read_project_configs().value or {}


def _read_json_object(path: Path) -> LoadResult[Dict[str, Any]]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return LoadResult(error=SourceError.UNAVAILABLE, detail=f"{path} does not exist")
    except OSError as exc:
        logger.debug("could not read %s: %s", path, exc)
        return LoadResult(error=SourceError.UNAVAILABLE, detail=str(exc))
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError and UnicodeDecodeError are ValueErrors; oversized int
        # literals raise a plain ValueError and deep nesting a RecursionError.
        logger.debug("could not parse %s: %s", path, exc)
        return LoadResult(error=SourceError.MALFORMED, detail=str(exc))
    if not isinstance(data, dict):
        return LoadResult(
            error=SourceError.MALFORMED, detail=f"{path} is not a JSON object"
        )
    return LoadResult(value=data)


# ----------------------------------------------------------------------
# Tolerant field access
# ----------------------------------------------------------------------
def _fold(entry: object) -> Dict[str, Any]:
    """Re-key a JSON object by lower-cased field name."""
    if not isinstance(entry, dict):
        return {}
    return {str(key).lower(): value for key, value in entry.items()}


def _coerce_int(value: object) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        try:
            parsed = float(cleaned)
        except ValueError:
            return None
        return int(parsed) if math.isfinite(parsed) else None
    return None


def _safe_int(entry: Dict[str, Any], *keys: str) -> int:
    for key in keys:
        value = _coerce_int(entry.get(key.lower()))
        if value is not None:
            return value
    return 0


def _optional_int(entry: Dict[str, Any], key: str) -> Optional[int]:
    if entry.get(key.lower()) is None:
        return None
    return _safe_int(entry, key)


def _to_decimal(value: object) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # str() keeps the shortest repr, so 0.1 stays 0.1 rather than its binary expansion.
        return Decimal(str(value)) if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "")
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


def _safe_decimal(entry: Dict[str, Any], key: str) -> Decimal:
    parsed = _to_decimal(entry.get(key.lower()))
    return parsed if parsed is not None else Decimal(0)


def _safe_str(entry: Dict[str, Any], key: str) -> str:
    value = entry.get(key.lower())
    return value if isinstance(value, str) else ""


def _objects(value: object) -> list:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


# ----------------------------------------------------------------------
# Document parsers
# ----------------------------------------------------------------------
def parse_usage_stats(data: Dict[str, Any]) -> UsageStats:
    doc = _fold(data)
    stats = UsageStats(
        version=_safe_int(doc, "version"),
        last_computed_date=_safe_str(doc, "lastComputedDate"),
        total_sessions=_safe_int(doc, "totalSessions"),
        total_messages=_safe_int(doc, "totalMessages"),
    )

    for raw in _objects(doc.get("dailyactivity")):
        entry = _fold(raw)
        stats.daily_activity.append(
            DailyActivity(
                date=_safe_str(entry, "date"),
                message_count=_safe_int(entry, "messageCount"),
                session_count=_safe_int(entry, "sessionCount"),
                tool_call_count=_safe_int(entry, "toolCallCount"),
            )
        )

    for raw in _objects(doc.get("dailymodeltokens")):
        entry = _fold(raw)
        tokens = entry.get("tokensbymodel")
        by_model: Dict[str, int] = {}
        if isinstance(tokens, dict):
            for model_id, count in tokens.items():
                by_model[str(model_id)] = _coerce_int(count) or 0
        stats.daily_model_tokens.append(
            DailyModelTokens(date=_safe_str(entry, "date"), tokens_by_model=by_model)
        )

    model_usage = doc.get("modelusage")
    if isinstance(model_usage, dict):
        for model_id, raw in model_usage.items():
            stats.model_usage[str(model_id)] = _parse_model_usage(_fold(raw))

    longest = doc.get("longestsession")
    if isinstance(longest, dict):
        entry = _fold(longest)
        stats.longest_session = LongestSession(
            session_id=_safe_str(entry, "sessionId"),
            duration=_safe_int(entry, "duration"),
            message_count=_safe_int(entry, "messageCount"),
            timestamp=_safe_str(entry, "timestamp"),
        )

    first_session = doc.get("firstsessiondate")
    if isinstance(first_session, str) and first_session:
        stats.first_session_date = first_session

    hour_counts = doc.get("hourcounts")
    if isinstance(hour_counts, dict):
        for hour, count in hour_counts.items():
            try:
                stats.hour_counts[int(hour)] = _coerce_int(count) or 0
            except (TypeError, ValueError):
                continue

    return stats


def _parse_model_usage(entry: Dict[str, Any]) -> ModelUsage:
    return ModelUsage(
        input_tokens=_safe_int(entry, "inputTokens"),
        output_tokens=_safe_int(entry, "outputTokens"),
        cache_read_tokens=_safe_int(entry, "cacheReadInputTokens", "cacheReadTokens"),
        cache_creation_tokens=_safe_int(
            entry, "cacheCreationInputTokens", "cacheCreationTokens"
        ),
        web_search_requests=_safe_int(entry, "webSearchRequests"),
        cost_usd=_safe_decimal(entry, "costUSD"),
        context_window=_safe_int(entry, "contextWindow"),
        max_output_tokens=_safe_int(entry, "maxOutputTokens"),
    )


def parse_project_configs(data: Dict[str, Any]) -> Dict[str, ProjectConfig]:
    """Extract the ``projects`` map, keeping only entries that carry a cost."""

    projects = _fold(data).get("projects")
    if not isinstance(projects, dict):
        return {}

    result: Dict[str, ProjectConfig] = {}
    for path, raw in projects.items():
        entry = _fold(raw)
        if "lastcost" not in entry:
            continue
        last_cost = _to_decimal(entry.get("lastcost"))
        if last_cost is None:
            continue
        model_usage: Dict[str, ProjectModelUsage] = {}
        raw_usage = entry.get("lastmodelusage")
        if isinstance(raw_usage, dict):
            for model_id, usage in raw_usage.items():
                usage_entry = _fold(usage)
                model_usage[str(model_id)] = ProjectModelUsage(
                    input_tokens=_safe_int(usage_entry, "inputTokens"),
                    output_tokens=_safe_int(usage_entry, "outputTokens"),
                    cache_read_tokens=_safe_int(
                        usage_entry, "cacheReadInputTokens", "cacheReadTokens"
                    ),
                    cache_creation_tokens=_safe_int(
                        usage_entry, "cacheCreationInputTokens", "cacheCreationTokens"
                    ),
                    web_search_requests=_safe_int(usage_entry, "webSearchRequests"),
                    cost_usd=_safe_decimal(usage_entry, "costUSD"),
                )
        session_id = entry.get("lastsessionid")
        result[str(path)] = ProjectConfig(
            last_cost=last_cost,
            last_total_input_tokens=_optional_int(entry, "lastTotalInputTokens"),
            last_total_output_tokens=_optional_int(entry, "lastTotalOutputTokens"),
            last_total_cache_creation_input_tokens=_optional_int(
                entry, "lastTotalCacheCreationInputTokens"
            ),
            last_total_cache_read_input_tokens=_optional_int(
                entry, "lastTotalCacheReadInputTokens"
            ),
            last_model_usage=model_usage,
            last_session_id=session_id if isinstance(session_id, str) else None,
        )
    return result


__all__ = [
    "LoadResult",
    "SnapshotLoader",
    "SourceError",
    "parse_project_configs",
    "parse_usage_stats",
]
