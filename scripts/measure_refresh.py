import time

from claude_tokens.config import load_config
from claude_tokens.loader import SnapshotLoader
from claude_tokens.summary import SummaryBuilder
from claude_tokens.utils import format_currency


def main() -> None:
    config = load_config()
    loader = SnapshotLoader(config.stats_cache_path, config.claude_config_path)
    builder = SummaryBuilder(pricing=config.pricing, strategy=config.today_cost_strategy)

    t0 = time.perf_counter()
    stats_result = loader.read_stats()
    projects_result = loader.read_project_configs()
    load_elapsed = time.perf_counter() - t0

    stats_status = stats_result.error.value if stats_result.error else "ok"
    projects_status = projects_result.error.value if projects_result.error else "ok"
    print(f"load: {load_elapsed:.3f}s, stats={stats_status}, projects={projects_status}")

    t1 = time.perf_counter()
    summary = builder.build(stats_result.value, projects_result.value or {})
    build_elapsed = time.perf_counter() - t1
    print(f"build: {build_elapsed:.3f}s, models={len(summary.models)}, projects={len(summary.projects)}")

    print(
        f"totals → {summary.display_label}: today={format_currency(summary.today.estimated_cost_usd)}, "
        f"all_time={format_currency(summary.all_time.estimated_cost_usd)}"
    )


if __name__ == "__main__":
    main()
