"""
Benchmark Report Generation

Produces human-readable Markdown for one run: ``summary.md`` with the
environment, per-library totals and the overall winner, plus one
``{CATEGORY}.md`` per category with a table per scenario.
"""
from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ormbench.comparison import LibraryComparison, ScenarioComparison
from ormbench.core.models import LibraryInfo, RunMetadata, category_display_name
from ormbench.core.numbers import mean
from ormbench.core.timeutil import Clock, isoformat, utc_now


def _library_label(library: Optional[LibraryInfo], library_id: str) -> str:
    return f"{library.name}@{library.version}" if library else library_id


def _bold(text: str, on: bool) -> str:
    return f"**{text}**" if on else text


def library_stats(scenarios: Sequence[ScenarioComparison]) -> Dict[str, Dict[str, float]]:
    """Wins and average p50/p95/rps per library over *scenarios*."""
    collected: Dict[str, Dict[str, list]] = defaultdict(lambda: {"p50": [], "p95": [], "rps": []})
    wins: Dict[str, int] = defaultdict(int)
    for scenario in scenarios:
        wins[scenario.winner] += 1
        for result in scenario.results:
            m = result.metrics
            collected[result.library_id]["p50"].append(m.latency.p50)
            collected[result.library_id]["p95"].append(m.latency.p95)
            collected[result.library_id]["rps"].append(m.throughput.rps)
    return {
        library_id: {
            "wins": wins.get(library_id, 0),
            "avg_p50": mean(values["p50"]),
            "avg_p95": mean(values["p95"]),
            "avg_rps": mean(values["rps"]),
        }
        for library_id, values in sorted(collected.items())
    }


class ReportGenerator:
    """Generates Markdown benchmark reports under ``{output_dir}/{run_id}/``."""

    def __init__(self, output_dir: Path, clock: Clock = utc_now):
        self.output_dir = Path(output_dir)
        self.clock = clock

    def generate(self, metadata: RunMetadata, comparison: Optional[LibraryComparison]) -> List[Path]:
        """Write summary.md and the category pages; returns the written paths."""
        run_dir = self.output_dir / metadata.run_id
        run_dir.mkdir(parents=True, exist_ok=True)

        paths = [self.generate_summary(run_dir, metadata, comparison)]
        if comparison is not None:
            for category in comparison.summary.categories_compared:
                paths.append(self.generate_category(run_dir, metadata, comparison, category))
        return paths

    def generate_summary(
        self, run_dir: Path, metadata: RunMetadata, comparison: Optional[LibraryComparison]
    ) -> Path:
        path = run_dir / "summary.md"
        env = metadata.environment
        db = metadata.configuration.database

        lines = [
            "# Benchmark Results Summary",
            "",
            f"**Run ID:** {metadata.run_id}",
            f"**Date:** {metadata.timestamp}",
            f"**Duration:** {metadata.duration_ms / 1000:.2f}s",
            f"**Status:** {metadata.status.value}",
            "",
            "## Test Environment",
            "",
            "### Hardware",
            f"- **CPU**: {env.cpu_model}",
            f"- **Cores**: {env.cpu_cores}",
            f"- **RAM**: {env.total_memory_mb} MB",
            f"- **OS**: {env.platform} {env.arch}",
            f"- **Python**: {env.python_version}",
            "",
            "### Database",
            f"- **PostgreSQL**: {env.postgres_version or 'Unknown'}",
            f"- **Connection Pool**: {env.connection_pool_size}",
            f"- **Host**: {db.host}:{db.port}",
        ]

        if comparison is not None:
            lines.extend(self._overall_section(comparison))
        else:
            lines.extend(["", "_Fewer than two libraries were tested; no comparison available._"])

        # ── Tested libraries ─────────────────────────────────────
        lines.extend(["", "## Tested Libraries", ""])
        for lib in metadata.tested_libraries:
            rate = lib.scenarios_succeeded / lib.scenarios_run * 100 if lib.scenarios_run else 0.0
            lines.append(f"### {lib.name}@{lib.version}")
            lines.append(f"- **Scenarios Run**: {lib.scenarios_run}")
            lines.append(f"- **Success Rate**: {lib.scenarios_succeeded}/{lib.scenarios_run} ({rate:.1f}%)")
            if lib.scenarios_failed:
                lines.append(f"- **Failed**: {lib.scenarios_failed}")
            lines.append("")

        config = metadata.configuration
        lines.extend([
            "## Test Configuration",
            "",
            f"- **Warmup Iterations**: {config.warmup_iterations}",
            f"- **Test Iterations**: {config.test_iterations}",
            f"- **Categories**: {', '.join(config.enabled_categories)}",
            f"- **Total Scenarios**: {len(config.enabled_scenarios)}",
        ])

        if metadata.git_info:
            git = metadata.git_info
            lines.extend([
                "",
                "## Git Information",
                "",
                f"- **Branch**: {git.branch}",
                f"- **Commit**: {git.commit[:7]}",
                f"- **Clean**: {'No (uncommitted changes)' if git.is_dirty else 'Yes'}",
            ])

        lines.extend(["", "---", "", f"**Generated**: {isoformat(self.clock())}"])
        path.write_text("\n".join(lines) + "\n")
        return path

    def _overall_section(self, comparison: LibraryComparison) -> List[str]:
        libraries = {lib.id: lib for lib in comparison.libraries}
        winner_id = comparison.overall_winner.library_id if comparison.overall_winner else ""
        total = len(comparison.scenarios)
        stats = library_stats(comparison.scenarios)

        lines = [
            "",
            "## Overall Summary",
            "",
            "| Library | Wins | Average p50 | Average p95 | Avg RPS |",
            "|---------|------|-------------|-------------|---------|",
        ]
        for library_id, s in stats.items():
            on = library_id == winner_id
            cells = [
                _library_label(libraries.get(library_id), library_id),
                "%d/%d" % (s["wins"], total),
                "%.2fms" % s["avg_p50"],
                "%.2fms" % s["avg_p95"],
                "%d RPS" % round(s["avg_rps"]),
            ]
            lines.append("| " + " | ".join(_bold(c, on) for c in cells) + " |")

        if winner_id:
            others = [s["avg_p50"] for lib, s in stats.items() if lib != winner_id]
            best = stats[winner_id]["avg_p50"]
            speedup = mean(others) / best if best > 0 and others else 1.0
            lines.extend([
                "",
                f"**Winner**: **{_library_label(libraries.get(winner_id), winner_id)}** - "
                f"Wins {comparison.overall_winner.wins}/{total} scenarios "
                f"with **{speedup:.2f}x average speedup**",
            ])

        lines.extend(["", "## Category Breakdown", ""])
        for category in comparison.summary.categories_compared:
            scenarios = [s for s in comparison.scenarios if s.category == category]
            cat_stats = library_stats(scenarios)
            leader = max(sorted(cat_stats), key=lambda lib: cat_stats[lib]["wins"])
            name = category_display_name(category)
            lines.extend([
                f"### {name}",
                f"- **Scenarios**: {len(scenarios)}",
                f"- **Winner**: {_library_label(libraries.get(leader), leader)} "
                f"({cat_stats[leader]['wins']}/{len(scenarios)} wins)",
                f"- **Details**: [{name} Results](./{category.upper()}.md)",
                "",
            ])
        return lines

    def generate_category(
        self, run_dir: Path, metadata: RunMetadata, comparison: LibraryComparison, category: str
    ) -> Path:
        path = run_dir / f"{category.upper()}.md"
        libraries = {lib.id: lib for lib in comparison.libraries}
        scenarios = [s for s in comparison.scenarios if s.category == category]
        name = category_display_name(category)
        env = metadata.environment

        lines = [
            f"# {name} Benchmark Results",
            "",
            f"Comparing {name.lower()} between "
            + " and ".join(_library_label(lib, lib.id) for lib in comparison.libraries) + ".",
            "",
            "## Test Environment",
            "",
            f"- **CPU**: {env.cpu_model} ({env.cpu_cores} cores)",
            f"- **RAM**: {env.total_memory_mb} MB",
            f"- **Python**: {env.python_version}",
            "",
            "## Detailed Results",
            "",
        ]

        for index, scenario in enumerate(scenarios, 1):
            lines.extend([
                f"### {index}. {scenario.scenario_name}",
                "",
                "| Library | p50 | p95 | p99 | RPS |",
                "|---------|-----|-----|-----|-----|",
            ])
            for result in scenario.results:
                on = result.library_id == scenario.winner
                m = result.metrics
                cells = [
                    _library_label(libraries.get(result.library_id), result.library_id),
                    f"{m.latency.p50:.2f}ms",
                    f"{m.latency.p95:.2f}ms",
                    f"{m.latency.p99:.2f}ms",
                    f"{round(m.throughput.rps)} RPS",
                ]
                lines.append("| " + " | ".join(_bold(c, on) for c in cells) + " |")
            lines.extend([
                "",
                f"**Winner**: {_library_label(libraries.get(scenario.winner), scenario.winner)} - "
                f"**{scenario.deltas.latency_p50.percentage:.1f}% faster** than "
                f"{_library_label(libraries.get(scenario.runner_up), scenario.runner_up)}",
                "",
                "---",
                "",
            ])

        lines.extend([f"**Generated**: {isoformat(self.clock())}", f"**Run ID**: {metadata.run_id}"])
        path.write_text("\n".join(lines) + "\n")
        return path
