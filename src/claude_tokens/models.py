from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple


class RefreshTrigger(str, Enum):
    STARTUP = "startup"
    FILE_CHANGED = "file_changed"
    FALLBACK_POLL = "fallback_poll"
    REMOTE_POLL = "remote_poll"
    MANUAL = "manual"


# ----------------------------------------------------------------------
# ~/.claude/stats-cache.json
# ----------------------------------------------------------------------
@dataclass
class DailyActivity:
    date: str = ""
    message_count: int = 0
    session_count: int = 0
    tool_call_count: int = 0


@dataclass
class DailyModelTokens:
    date: str = ""
    tokens_by_model: Dict[str, int] = field(default_factory=dict)


@dataclass
class ModelUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0
    web_search_requests: int = 0
    cost_usd: Decimal = Decimal(0)
    context_window: int = 0
    max_output_tokens: int = 0


@dataclass
class LongestSession:
    session_id: str = ""
    duration: int = 0
    message_count: int = 0
    timestamp: str = ""


@dataclass
class UsageStats:
    version: int = 0
    last_computed_date: str = ""
    daily_activity: List[DailyActivity] = field(default_factory=list)
    daily_model_tokens: List[DailyModelTokens] = field(default_factory=list)
    model_usage: Dict[str, ModelUsage] = field(default_factory=dict)
    total_sessions: int = 0
    total_messages: int = 0
    longest_session: Optional[LongestSession] = None
    first_session_date: Optional[str] = None
    hour_counts: Dict[int, int] = field(default_factory=dict)

    def activity_for(self, day: str) -> Optional[DailyActivity]:
        for activity in self.daily_activity:
            if activity.date == day:
                return activity
        return None

    def latest_activity(self) -> Optional[DailyActivity]:
        return self.daily_activity[-1] if self.daily_activity else None

    def model_tokens_for(self, day: str) -> Optional[DailyModelTokens]:
        for entry in self.daily_model_tokens:
            if entry.date == day:
                return entry
        return None


# ----------------------------------------------------------------------
# ~/.claude.json
# ----------------------------------------------------------------------
@dataclass
class ProjectModelUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0
    web_search_requests: int = 0
    cost_usd: Decimal = Decimal(0)


@dataclass
class ProjectConfig:
    last_cost: Optional[Decimal] = None
    last_total_input_tokens: Optional[int] = None
    last_total_output_tokens: Optional[int] = None
    last_total_cache_creation_input_tokens: Optional[int] = None
    last_total_cache_read_input_tokens: Optional[int] = None
    last_model_usage: Dict[str, ProjectModelUsage] = field(default_factory=dict)
    last_session_id: Optional[str] = None


# ----------------------------------------------------------------------
# Remote rate-limit snapshot
# ----------------------------------------------------------------------
@dataclass
class UsageInfo:
    tokens_limit: int = 0
    tokens_remaining: int = 0
    tokens_reset: Optional[datetime] = None
    requests_limit: int = 0
    requests_remaining: int = 0
    requests_reset: Optional[datetime] = None

    @property
    def remaining_percent(self) -> float:
        if self.tokens_limit <= 0:
            return 0.0
        return self.tokens_remaining / self.tokens_limit * 100

    @property
    def remaining_percent_rounded(self) -> int:
        return int(round(self.remaining_percent))


# ----------------------------------------------------------------------
# Engine output
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class TodaySummary:
    message_count: int = 0
    session_count: int = 0
    tool_call_count: int = 0
    estimated_cost_usd: Decimal = Decimal(0)


@dataclass(frozen=True)
class AllTimeSummary:
    messages: int = 0
    sessions: int = 0
    estimated_cost_usd: Decimal = Decimal(0)


@dataclass(frozen=True)
class ModelSummary:
    model_id: str
    short_name: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0
    estimated_cost_usd: Decimal = Decimal(0)


@dataclass(frozen=True)
class ProjectSummary:
    full_path: str
    short_name: str
    last_cost: Decimal


@dataclass(frozen=True)
class TokenSummary:
    display_date: date
    today: TodaySummary = field(default_factory=TodaySummary)
    all_time: AllTimeSummary = field(default_factory=AllTimeSummary)
    models: Tuple[ModelSummary, ...] = ()
    projects: Tuple[ProjectSummary, ...] = ()
    # False when today's cost came from per-day output tokens rather than the
    # message-share approximation.
    today_cost_is_estimate: bool = True

    @property
    def display_label(self) -> str:
        return f"{self.display_date:%b} {self.display_date.day}"


__all__ = [
    "AllTimeSummary",
    "DailyActivity",
    "DailyModelTokens",
    "LongestSession",
    "ModelSummary",
    "ModelUsage",
    "ProjectConfig",
    "ProjectModelUsage",
    "ProjectSummary",
    "RefreshTrigger",
    "TodaySummary",
    "TokenSummary",
    "UsageInfo",
    "UsageStats",
]
