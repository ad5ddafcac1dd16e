from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

DEFAULT_CODE_DIR = Path.home() / ".claude"
STATS_CACHE_FILENAME = "stats-cache.json"
GLOBAL_CONFIG_FILENAME = ".claude.json"
CLAUDE_CONFIG_ENV = "CLAUDE_CONFIG_DIR"


def claude_data_dir(explicit: Optional[Path] = None) -> Path:
    if explicit is not None:
        return explicit.expanduser()
    env_value = os.getenv(CLAUDE_CONFIG_ENV, "").strip()
    if env_value:
        # Claude accepts a comma separated list; the first entry owns the stats cache.
        first = env_value.split(",")[0].strip()
        if first:
            return Path(first).expanduser()
    return DEFAULT_CODE_DIR


def default_stats_cache_path() -> Path:
    return claude_data_dir() / STATS_CACHE_FILENAME


def default_global_config_path() -> Path:
    # ~/.claude.json lives next to the data directory, not inside it.
    return Path.home() / GLOBAL_CONFIG_FILENAME


__all__ = [
    "CLAUDE_CONFIG_ENV",
    "DEFAULT_CODE_DIR",
    "GLOBAL_CONFIG_FILENAME",
    "STATS_CACHE_FILENAME",
    "claude_data_dir",
    "default_global_config_path",
    "default_stats_cache_path",
]
