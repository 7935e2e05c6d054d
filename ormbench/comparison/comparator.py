"""
Comparator

Derives winners and deltas between libraries within one run, between
versions of one library across runs, and between two runs.

Scenario winners are decided by p50 latency alone; the delta is taken
between the winner and the runner-up only. A scenario measured by a single
library is not a competition and is left out.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from ormbench.aggregation.aggregator import latest_per
from ormbench.aggregation.models import LibraryResult
from ormbench.core.interfaces import IFileStore
from ormbench.core.models import BenchmarkResult, LibraryInfo, Trend
from ormbench.core.numbers import (
    SIGNIFICANT_CHANGE_PCT,
    latency_trend,
    mean,
    percent_change,
)
from ormbench.core.timeutil import Clock, isoformat, utc_now
from ormbench.storage.layout import StorageLayout
from ormbench.storage.measurements import MeasurementStore

from .models import (
    CategoryRecord,
    ComparisonSummary,
    LibraryComparison,
    LibraryRunDelta,
    MetricDelta,
    OverallWinner,
    RunComparison,
    ScenarioComparison,
    ScenarioDeltas,
    ScenarioRunDelta,
    SignificantChange,
    VersionComparison,
    VersionMetrics,
    VersionScenarioComparison,
)

logger = logging.getLogger(__name__)

WIN_REASON = "latency_p50"


def _delta(best: float, other: float, better: str) -> MetricDelta:
    """Absolute difference and percentage relative to *best*."""
    absolute = abs(other - best)
    percentage = abs(percent_change(best, other))
    return MetricDelta(absolute=absolute, percentage=percentage, better=better)


def _as_library_result(result: BenchmarkResult) -> LibraryResult:
    m = result.metadata
    return LibraryResult(
        library_id=m.library_id,
        library_name=m.library_name,
        library_version=m.library_version,
        metrics=result.metrics,
        timestamp=m.timestamp,
        run_id=m.run_id,
    )


def compare_scenario(candidates: Sequence[BenchmarkResult]) -> ScenarioComparison:
    """Rank two or more results of one scenario by p50 latency."""
    ranked = sorted(candidates, key=lambda r: (r.metrics.latency.p50, r.metadata.library_id))
    winner, runner_up = ranked[0], ranked[1]
    w, r = winner.metrics, runner_up.metrics
    winner_id = winner.metadata.library_id
    higher = winner_id if w.throughput.rps >= r.throughput.rps else runner_up.metadata.library_id

    return ScenarioComparison(
        scenario_id=winner.metadata.scenario_id,
        scenario_name=winner.metadata.scenario_name,
        category=winner.metadata.category,
        winner=winner_id,
        winner_reason=WIN_REASON,
        runner_up=runner_up.metadata.library_id,
        results=[_as_library_result(c) for c in sorted(candidates, key=lambda c: c.metadata.library_id)],
        deltas=ScenarioDeltas(
            latency_p50=_delta(w.latency.p50, r.latency.p50, winner_id),
            latency_p95=_delta(w.latency.p95, r.latency.p95, winner_id),
            latency_p99=_delta(w.latency.p99, r.latency.p99, winner_id),
            throughput=_delta(w.throughput.rps, r.throughput.rps, higher),
        ),
    )


def _shares_best_p50(scenario: ScenarioComparison, library_id: str) -> bool:
    own = scenario.result_for(library_id)
    top = scenario.result_for(scenario.winner)
    return own is not None and top is not None and own.metrics.latency.p50 == top.metrics.latency.p50


def overall_winner(
    scenarios: Sequence[ScenarioComparison], library_ids: Sequence[str]
) -> Optional[OverallWinner]:
    """
    Library with the most scenario wins; equal counts go to the id that
    sorts first. A scenario where the library shares the best p50 with
    another library counts as a tie for it.
    """
    if not scenarios:
        return None

    win_counts = {lib: 0 for lib in library_ids}
    for scenario in scenarios:
        win_counts[scenario.winner] = win_counts.get(scenario.winner, 0) + 1
    best = min(win_counts, key=lambda lib: (-win_counts[lib], lib))

    records: Dict[str, CategoryRecord] = {}
    for scenario in scenarios:
        record = records.setdefault(scenario.category, CategoryRecord(scenario.category))
        if scenario.winner == best:
            record.wins += 1
        elif _shares_best_p50(scenario, best):
            record.ties += 1
        else:
            record.losses += 1

    categories = [records[c] for c in sorted(records)]
    return OverallWinner(
        library_id=best,
        wins=sum(c.wins for c in categories),
        losses=sum(c.losses for c in categories),
        ties=sum(c.ties for c in categories),
        categories=categories,
    )


def comparison_summary(scenarios: Sequence[ScenarioComparison]) -> ComparisonSummary:
    return ComparisonSummary(
        total_scenarios=len(scenarios),
        categories_compared=sorted({s.category for s in scenarios}),
        significant_differences=sum(
            1 for s in scenarios if s.deltas.latency_p50.percentage > SIGNIFICANT_CHANGE_PCT
        ),
        average_performance_diff=mean(s.deltas.latency_p50.percentage for s in scenarios),
    )


class Comparator:
    """Writes library, version and run comparisons."""

    def __init__(
        self,
        store: IFileStore,
        layout: StorageLayout,
        measurements: MeasurementStore,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.layout = layout
        self.measurements = measurements
        self.clock = clock

    async def _latest_results(self, run_id: str) -> Dict[Tuple[str, str], BenchmarkResult]:
        results = await self.measurements.load_all_for_run(run_id)
        return latest_per(results, lambda r: (r.metadata.library_id, r.metadata.scenario_id))

    # =========================================================================
    # Libraries within one run
    # =========================================================================

    async def compare_libraries(self, run_id: str) -> Optional[LibraryComparison]:
        """
        Rank the libraries of a run scenario by scenario.

        Returns None when fewer than two libraries have measured results.
        A bundle without a completed iteration keeps its library listed but
        is never ranked.
        """
        results = await self._latest_results(run_id)
        if not results:
            logger.warning("No results found for run %s", run_id)
            return None

        libraries: Dict[str, LibraryInfo] = {}
        by_scenario: Dict[str, List[BenchmarkResult]] = defaultdict(list)
        for (library_id, scenario_id), result in sorted(results.items()):
            libraries.setdefault(library_id, result.metadata.library)
            if result.metrics.measured:
                by_scenario[scenario_id].append(result)
            else:
                logger.warning("Not ranking %s/%s: no completed iterations", library_id, scenario_id)

        ranked_libraries = {r.metadata.library_id for group in by_scenario.values() for r in group}
        if len(ranked_libraries) < 2:
            logger.warning("Need at least 2 libraries to compare run %s", run_id)
            return None

        scenarios = [
            compare_scenario(candidates)
            for _, candidates in sorted(by_scenario.items())
            if len(candidates) >= 2
        ]
        library_ids = sorted(libraries)

        comparison = LibraryComparison(
            comparison_id=f"{run_id}-library-comparison",
            run_id=run_id,
            libraries=[libraries[lib] for lib in library_ids],
            scenarios=scenarios,
            overall_winner=overall_winner(scenarios, library_ids),
            summary=comparison_summary(scenarios),
            generated=isoformat(self.clock()),
        )

        data = comparison.to_dict()
        await self.store.write_json(self.layout.library_comparison(run_id), data)
        await self.store.write_json(self.layout.latest_library_comparison, data)

        winner = comparison.overall_winner.library_id if comparison.overall_winner else "none"
        logger.info("Library comparison for %s: %d scenarios, overall winner %s",
                    run_id, len(scenarios), winner)
        return comparison

    async def load_library_comparison(self, run_id: Optional[str] = None) -> Optional[LibraryComparison]:
        """Stored comparison of *run_id*, or the latest one."""
        path = self.layout.library_comparison(run_id) if run_id else self.layout.latest_library_comparison
        data = await self.store.read_json_optional(path)
        return LibraryComparison.from_dict(data) if data is not None else None

    # =========================================================================
    # Versions of one library
    # =========================================================================

    async def _latest_for_library(self, library_id: str) -> Tuple[Optional[str], List[BenchmarkResult]]:
        """Results of the most recent run that measured *library_id*."""
        for run_id in await self.measurements.list_runs():
            if await self.store.exists(self.layout.library_dir(run_id, library_id)):
                return run_id, await self.measurements.load_all_for_library(run_id, library_id)
        return None, []

    async def compare_versions(self, library_name: str, versions: Sequence[str]) -> VersionComparison:
        """
        Compare versions ``{library_name}-v{version}`` over the scenarios all
        of them ran. The trend runs from the first to the last version given.

        Raises:
            ValueError: fewer than two versions
        """
        versions = list(versions)
        if len(versions) < 2:
            raise ValueError("Need at least 2 versions to compare")

        logger.info("Comparing %s versions: %s", library_name, " vs ".join(versions))

        per_version: Dict[str, Dict[str, BenchmarkResult]] = {}
        runs: Dict[str, Optional[str]] = {}
        for version in versions:
            run_id, results = await self._latest_for_library(f"{library_name}-v{version}")
            if run_id is None:
                logger.warning("No results found for %s version %s", library_name, version)
            runs[version] = run_id
            per_version[version] = latest_per(results, lambda r: r.metadata.scenario_id)

        common = sorted(set.intersection(*(set(per_version[v]) for v in versions)))
        first, last = versions[0], versions[-1]

        scenarios = []
        for scenario_id in common:
            head = per_version[first][scenario_id]
            change = percent_change(
                head.metrics.latency.p50, per_version[last][scenario_id].metrics.latency.p50
            )
            scenarios.append(VersionScenarioComparison(
                scenario_id=scenario_id,
                scenario_name=head.metadata.scenario_name,
                category=head.metadata.category,
                version_results=[
                    VersionMetrics(v, runs[v] or "", per_version[v][scenario_id].metrics)
                    for v in versions
                ],
                trend=latency_trend(change).value,
                change_percentage=change,
            ))

        changes = [
            SignificantChange(
                scenario_id=s.scenario_id,
                scenario_name=s.scenario_name,
                type="improvement" if s.trend == Trend.IMPROVING.value else "regression",
                metric="latency",
                change_percentage=s.change_percentage,
                from_version=first,
                to_version=last,
            )
            for s in scenarios
            if abs(s.change_percentage) > SIGNIFICANT_CHANGE_PCT
        ]

        comparison = VersionComparison(
            comparison_id=f"{library_name}-version-comparison",
            library_name=library_name,
            versions=versions,
            scenarios=scenarios,
            improvement_count=sum(1 for c in changes if c.type == "improvement"),
            regression_count=sum(1 for c in changes if c.type == "regression"),
            no_change_count=len(scenarios) - len(changes),
            significant_changes=changes,
            generated=isoformat(self.clock()),
        )

        path = self.layout.version_comparison(library_name, versions)
        await self.store.write_json(path, comparison.to_dict())
        logger.info("Version comparison written: %s", path.name)
        return comparison

    # =========================================================================
    # Two runs
    # =========================================================================

    async def compare_runs(self, run_a: str, run_b: str) -> Optional[RunComparison]:
        """
        Per-scenario p50 and throughput change from *run_a* to *run_b* for
        every library and scenario present in both. None when the runs share
        no library.
        """
        logger.info("Comparing runs: %s vs %s", run_a, run_b)
        before = await self._latest_results(run_a)
        after = await self._latest_results(run_b)

        common_libraries = sorted({k[0] for k in before} & {k[0] for k in after})
        if not common_libraries:
            logger.warning("No common libraries between runs %s and %s", run_a, run_b)
            return None

        comparison = RunComparison(run_a=run_a, run_b=run_b, libraries=[])
        for library_id in common_libraries:
            delta = LibraryRunDelta(library_id=library_id)
            for key in sorted(k for k in before if k[0] == library_id and k in after):
                old, new = before[key].metrics, after[key].metrics
                latency_change = percent_change(old.latency.p50, new.latency.p50)
                trend = latency_trend(latency_change)
                delta.scenarios.append(ScenarioRunDelta(
                    scenario_id=key[1],
                    scenario_name=after[key].metadata.scenario_name,
                    category=after[key].metadata.category,
                    latency_p50_before=old.latency.p50,
                    latency_p50_after=new.latency.p50,
                    latency_change_pct=latency_change,
                    throughput_before=old.throughput.rps,
                    throughput_after=new.throughput.rps,
                    throughput_change_pct=percent_change(old.throughput.rps, new.throughput.rps),
                    trend=trend.value,
                ))
                if trend is Trend.IMPROVING:
                    comparison.improved += 1
                elif trend is Trend.DEGRADING:
                    comparison.degraded += 1
                else:
                    comparison.stable += 1
            comparison.libraries.append(delta)

        comparison.generated = isoformat(self.clock())
        await self.store.write_json(self.layout.run_comparison(run_a, run_b), comparison.to_dict())
        logger.info("Run comparison: %d improved, %d degraded, %d stable",
                    comparison.improved, comparison.degraded, comparison.stable)
        return comparison
