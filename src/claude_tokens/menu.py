from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from .models import TokenSummary, UsageInfo
from .utils import format_count, format_currency, format_relative, format_tokens

DEFAULT_TITLE = "◆"


@dataclass(frozen=True)
class MenuLine:
    title: str
    children: Tuple["MenuLine", ...] = ()


# None marks a separator, the same convention rumps uses for menu lists.
MenuEntry = Optional[MenuLine]


def status_title(percent: Optional[int]) -> str:
    if percent is None:
        return DEFAULT_TITLE
    return f"{max(0, min(percent, 100))}%"


def build_menu(
    summary: TokenSummary,
    usage: Optional[UsageInfo] = None,
    now: Optional[datetime] = None,
) -> List[MenuEntry]:
    entries: List[MenuEntry] = []
    approx = "~" if summary.today_cost_is_estimate else ""

    entries.append(MenuLine(f"Today ({summary.display_label})"))
    entries.append(None)
    entries.append(MenuLine(f"  Cost: {approx}{format_currency(summary.today.estimated_cost_usd)}"))
    entries.append(MenuLine(f"  Messages: {format_count(summary.today.message_count)}"))
    entries.append(MenuLine(f"  Sessions: {format_count(summary.today.session_count)}"))
    entries.append(MenuLine(f"  Tool Calls: {format_count(summary.today.tool_call_count)}"))
    entries.append(None)

    if usage is not None:
        entries.extend(_usage_lines(usage, now))
        entries.append(None)

    if summary.models:
        children = tuple(
            MenuLine(
                model.short_name,
                (
                    MenuLine(
                        f"In: {format_tokens(model.input_tokens)}  "
                        f"Out: {format_tokens(model.output_tokens)}"
                    ),
                    MenuLine(
                        f"Cache R: {format_tokens(model.cache_read_tokens)}  "
                        f"W: {format_tokens(model.cache_creation_tokens)}"
                    ),
                    MenuLine(f"~{format_currency(model.estimated_cost_usd)}"),
                ),
            )
            for model in summary.models
        )
        entries.append(MenuLine("Models", children))
        entries.append(None)

    if summary.projects:
        children = tuple(
            MenuLine(f"{project.short_name}  {format_currency(project.last_cost)}")
            for project in summary.projects
        )
        entries.append(MenuLine("Projects", children))
        entries.append(None)

    entries.append(MenuLine("All Time"))
    entries.append(MenuLine(f"  Cost: ~{format_currency(summary.all_time.estimated_cost_usd)}"))
    entries.append(MenuLine(f"  Messages: {format_count(summary.all_time.messages)}"))
    entries.append(MenuLine(f"  Sessions: {format_count(summary.all_time.sessions)}"))
    return entries


def _usage_lines(usage: UsageInfo, now: Optional[datetime]) -> List[MenuLine]:
    lines = [
        MenuLine("API Rate Limits"),
        MenuLine(
            f"  Tokens: {format_tokens(usage.tokens_remaining)} / "
            f"{format_tokens(usage.tokens_limit)} ({usage.remaining_percent_rounded}%)"
        ),
    ]
    if usage.tokens_reset is not None:
        lines.append(MenuLine(f"  Tokens reset {format_relative(usage.tokens_reset, now)}"))
    if usage.requests_limit:
        lines.append(
            MenuLine(
                f"  Requests: {format_count(usage.requests_remaining)} / "
                f"{format_count(usage.requests_limit)}"
            )
        )
    if usage.requests_reset is not None:
        lines.append(MenuLine(f"  Requests reset {format_relative(usage.requests_reset, now)}"))
    return lines


__all__ = ["DEFAULT_TITLE", "MenuEntry", "MenuLine", "build_menu", "status_title"]
