from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .models import (
    AllTimeSummary,
    DailyActivity,
    ModelSummary,
    ProjectConfig,
    ProjectSummary,
    TodaySummary,
    TokenSummary,
    UsageStats,
)
from .pricing import DEFAULT_PRICING, PricingTable, estimate_cost, estimate_output_cost, short_model_name


class TodayCostStrategy(str, Enum):
    """How the displayed day's cost is estimated.

    ``DAILY_OUTPUT`` prices the day's per-model output tokens at the output
    rate when the stats cache has them, and falls back to ``PROPORTIONAL``
    otherwise. ``PROPORTIONAL`` always allocates the all-time cost by the
    day's share of messages. Neither is exact: per-day data carries no cache
    token counts, and cache tokens dominate real spend.
    """

    DAILY_OUTPUT = "daily_output"
    PROPORTIONAL = "proportional"


def _local_today() -> date:
    return date.today()


class SummaryBuilder:
    def __init__(
        self,
        pricing: PricingTable = DEFAULT_PRICING,
        strategy: TodayCostStrategy = TodayCostStrategy.DAILY_OUTPUT,
        clock: Callable[[], date] = _local_today,
    ):
        self.pricing = pricing
        self.strategy = strategy
        self._clock = clock

    def build(
        self,
        stats: Optional[UsageStats],
        projects: Optional[Dict[str, ProjectConfig]] = None,
    ) -> TokenSummary:
        today = self._clock()
        project_summaries = _project_summaries(projects or {})
        if stats is None:
            return TokenSummary(display_date=today, projects=project_summaries)

        activity = stats.activity_for(today.isoformat()) or stats.latest_activity()
        display_date = _activity_date(activity) or today

        models = self._model_summaries(stats)
        total_cost = sum((model.estimated_cost_usd for model in models), Decimal(0))

        day_cost, is_estimate = self._day_cost(stats, activity, total_cost)
        today_summary = TodaySummary()
        if activity is not None:
            today_summary = TodaySummary(
                message_count=activity.message_count,
                session_count=activity.session_count,
                tool_call_count=activity.tool_call_count,
                estimated_cost_usd=day_cost,
            )

        return TokenSummary(
            display_date=display_date,
            today=today_summary,
            all_time=AllTimeSummary(
                messages=stats.total_messages,
                sessions=stats.total_sessions,
                estimated_cost_usd=total_cost,
            ),
            models=models,
            projects=project_summaries,
            today_cost_is_estimate=is_estimate,
        )

    def _model_summaries(self, stats: UsageStats) -> Tuple[ModelSummary, ...]:
        summaries: List[ModelSummary] = []
        for model_id, usage in stats.model_usage.items():
            summaries.append(
                ModelSummary(
                    model_id=model_id,
                    short_name=short_model_name(model_id),
                    input_tokens=usage.input_tokens,
                    output_tokens=usage.output_tokens,
                    cache_read_tokens=usage.cache_read_tokens,
                    cache_creation_tokens=usage.cache_creation_tokens,
                    estimated_cost_usd=estimate_cost(model_id, usage, self.pricing),
                )
            )
        # sorted() is stable, so equal costs keep file order.
        summaries = sorted(summaries, key=lambda model: model.estimated_cost_usd, reverse=True)
        return tuple(summaries)

    def _day_cost(
        self,
        stats: UsageStats,
        activity: Optional[DailyActivity],
        total_cost: Decimal,
    ) -> Tuple[Decimal, bool]:
        if activity is None:
            return Decimal(0), True
        if self.strategy is TodayCostStrategy.DAILY_OUTPUT:
            daily = stats.model_tokens_for(activity.date)
            if daily is not None and daily.tokens_by_model:
                cost = sum(
                    (
                        estimate_output_cost(model_id, tokens, self.pricing)
                        for model_id, tokens in daily.tokens_by_model.items()
                    ),
                    Decimal(0),
                )
                return cost, False
        return _proportional_cost(activity, stats.total_messages, total_cost), True


def _proportional_cost(
    activity: DailyActivity, total_messages: int, total_cost: Decimal
) -> Decimal:
    if total_messages <= 0 or total_cost <= 0:
        return Decimal(0)
    return total_cost * Decimal(activity.message_count) / Decimal(total_messages)


def _activity_date(activity: Optional[DailyActivity]) -> Optional[date]:
    if activity is None or not activity.date:
        return None
    try:
        return date.fromisoformat(activity.date[:10])
    except ValueError:
        return None


def _project_summaries(projects: Dict[str, ProjectConfig]) -> Tuple[ProjectSummary, ...]:
    summaries = [
        ProjectSummary(
            full_path=path,
            short_name=project_short_name(path),
            last_cost=config.last_cost,
        )
        for path, config in projects.items()
        if config.last_cost is not None
    ]
    summaries.sort(key=lambda project: project.last_cost, reverse=True)
    return tuple(summaries)


def project_short_name(path: str) -> str:
    trimmed = path.rstrip("/\\")
    if not trimmed:
        return path
    return trimmed.replace("\\", "/").rsplit("/", 1)[-1]


__all__ = ["SummaryBuilder", "TodayCostStrategy", "project_short_name"]
