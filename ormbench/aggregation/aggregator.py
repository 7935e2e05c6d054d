"""
Aggregator

Folds stored measurements into three views and writes each one as a single
document that is replaced on every pass:

* by library   -> ``aggregated/by-library/{library}.json``
* by scenario  -> ``aggregated/by-scenario/{scenario}.json``
* by category  -> ``aggregated/by-category/{category}.json``

Output depends only on the stored measurements, the previous by-library
document and the clock (``generated`` is the only time-dependent field).
Entries are always sorted by scenario id or library id.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ormbench.core.interfaces import IFileStore
from ormbench.core.models import BenchmarkResult
from ormbench.core.numbers import mean
from ormbench.core.sweep import SweepReport
from ormbench.core.timeutil import Clock, isoformat, utc_now
from ormbench.storage.layout import StorageLayout
from ormbench.storage.measurements import MeasurementStore

from .models import (
    CategoryAggregate,
    CategoryLibraryStats,
    LibraryAggregate,
    LibraryResult,
    OverallStats,
    ScenarioAggregate,
    ScenarioSummary,
)

logger = logging.getLogger(__name__)


def latest_per(results: Iterable[BenchmarkResult], key) -> Dict[str, BenchmarkResult]:
    """Keep the most recently written result for each key."""
    chosen: Dict[str, BenchmarkResult] = {}
    for result in results:
        k = key(result)
        current = chosen.get(k)
        if current is None or result.metadata.timestamp > current.metadata.timestamp:
            chosen[k] = result
    return chosen


def overall_stats(scenarios: List[ScenarioSummary]) -> OverallStats:
    """
    Plain means of the per-scenario p50/p95/rps values. Percentiles are not
    pooled from raw samples, so this is an approximation for skewed
    distributions.
    """
    if not scenarios:
        return OverallStats()
    return OverallStats(
        total_scenarios=len(scenarios),
        total_runs=sum(s.run_count for s in scenarios),
        average_latency_p50=mean(s.metrics.latency.p50 for s in scenarios),
        average_latency_p95=mean(s.metrics.latency.p95 for s in scenarios),
        average_throughput=mean(s.metrics.throughput.rps for s in scenarios),
        total_errors=sum(s.metrics.errors.count for s in scenarios),
    )


class Aggregator:
    """Builds and writes by-library, by-scenario and by-category aggregates."""

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

    async def _resolve_run(self, run_id: Optional[str]) -> Optional[str]:
        if run_id:
            return run_id
        latest = await self.measurements.latest_run_id()
        if latest is None:
            logger.warning("No runs found")
        return latest

    # =========================================================================
    # By library
    # =========================================================================

    async def aggregate_by_library(
        self, library_id: str, run_id: Optional[str] = None
    ) -> Optional[LibraryAggregate]:
        """
        Summarize one library's scenarios in a run and extend its history.

        The previous aggregate's snapshot is appended to the history only
        when it came from a different run, so aggregating the same run twice
        yields the same document.
        """
        run_id = await self._resolve_run(run_id)
        if run_id is None:
            return None

        results = await self.measurements.load_all_for_library(run_id, library_id)
        if not results:
            logger.warning("Nothing to aggregate for library %s in run %s", library_id, run_id)
            return None

        by_scenario = latest_per(results, lambda r: r.metadata.scenario_id)
        scenarios = [
            ScenarioSummary(
                scenario_id=r.metadata.scenario_id,
                scenario_name=r.metadata.scenario_name,
                category=r.metadata.category,
                metrics=r.metrics,
                run_count=1,
                last_run=r.metadata.timestamp,
            )
            for _, r in sorted(by_scenario.items())
        ]
        newest = max(by_scenario.values(), key=lambda r: r.metadata.timestamp)

        history = []
        previous = await self.load_library(library_id)
        if previous is not None:
            history = list(previous.history)
            if previous.run_id and previous.run_id != run_id:
                history.append(previous.snapshot())

        last_tested = newest.metadata.timestamp
        aggregate = LibraryAggregate(
            library_id=library_id,
            library_name=newest.metadata.library_name,
            library_version=newest.metadata.library_version,
            run_id=run_id,
            scenarios=scenarios,
            overall_stats=overall_stats(scenarios),
            history=history,
            first_seen=history[0].timestamp if history else last_tested,
            last_tested=last_tested,
            total_runs=len(history) + 1,
            generated=isoformat(self.clock()),
        )

        await self.store.write_json(self.layout.by_library(library_id), aggregate.to_dict())
        logger.info("Aggregated library %s (%d scenarios)", library_id, len(scenarios))
        return aggregate

    async def load_library(self, library_id: str) -> Optional[LibraryAggregate]:
        data = await self.store.read_json_optional(self.layout.by_library(library_id))
        return LibraryAggregate.from_dict(data) if data is not None else None

    # =========================================================================
    # By scenario
    # =========================================================================

    async def aggregate_by_scenario(
        self, scenario_id: str, run_id: Optional[str] = None
    ) -> Optional[ScenarioAggregate]:
        """Latest measurement of *scenario_id* from every library in the run."""
        run_id = await self._resolve_run(run_id)
        if run_id is None:
            return None

        results = await self.measurements.load_all_for_scenario(run_id, scenario_id)
        if not results:
            logger.warning("Nothing to aggregate for scenario %s in run %s", scenario_id, run_id)
            return None

        by_library = latest_per(results, lambda r: r.metadata.library_id)
        first = by_library[min(by_library)]
        aggregate = ScenarioAggregate(
            scenario_id=scenario_id,
            scenario_name=first.metadata.scenario_name,
            category=first.metadata.category,
            run_id=run_id,
            library_results=[
                LibraryResult(
                    library_id=r.metadata.library_id,
                    library_name=r.metadata.library_name,
                    library_version=r.metadata.library_version,
                    metrics=r.metrics,
                    timestamp=r.metadata.timestamp,
                    run_id=r.metadata.run_id,
                )
                for _, r in sorted(by_library.items())
            ],
            generated=isoformat(self.clock()),
        )

        await self.store.write_json(self.layout.by_scenario(scenario_id), aggregate.to_dict())
        logger.info("Aggregated scenario %s (%d libraries)", scenario_id, len(by_library))
        return aggregate

    async def load_scenario(self, scenario_id: str) -> Optional[ScenarioAggregate]:
        data = await self.store.read_json_optional(self.layout.by_scenario(scenario_id))
        return ScenarioAggregate.from_dict(data) if data is not None else None

    # =========================================================================
    # By category
    # =========================================================================

    async def aggregate_by_category(
        self, category: str, run_id: Optional[str] = None
    ) -> Optional[CategoryAggregate]:
        """Per-library scenario count and averaged latency/throughput within a category."""
        run_id = await self._resolve_run(run_id)
        if run_id is None:
            return None

        results = await self.measurements.load_all_for_category(run_id, category)
        if not results:
            logger.warning("Nothing to aggregate for category %s in run %s", category, run_id)
            return None

        grouped: Dict[str, List[BenchmarkResult]] = defaultdict(list)
        for result in results:
            grouped[result.metadata.library_id].append(result)

        stats = []
        for library_id in sorted(grouped):
            group = sorted(grouped[library_id], key=lambda r: r.metadata.scenario_id)
            stats.append(CategoryLibraryStats(
                library_id=library_id,
                library_name=group[0].metadata.library_name,
                library_version=group[0].metadata.library_version,
                scenario_count=len(group),
                average_latency_p50=mean(r.metrics.latency.p50 for r in group),
                average_latency_p95=mean(r.metrics.latency.p95 for r in group),
                average_throughput=mean(r.metrics.throughput.rps for r in group),
                total_runs=len(group),
            ))

        aggregate = CategoryAggregate(
            category=category,
            run_id=run_id,
            scenarios=sorted({r.metadata.scenario_id for r in results}),
            library_results=stats,
            generated=isoformat(self.clock()),
        )

        await self.store.write_json(self.layout.by_category(category), aggregate.to_dict())
        logger.info("Aggregated category %s (%d libraries)", category, len(stats))
        return aggregate

    async def load_category(self, category: str) -> Optional[CategoryAggregate]:
        data = await self.store.read_json_optional(self.layout.by_category(category))
        return CategoryAggregate.from_dict(data) if data is not None else None

    # =========================================================================
    # Sweep
    # =========================================================================

    async def aggregate_run(self, run_id: str) -> SweepReport:
        """
        Aggregate every library, scenario and category found in a run.

        Each key is handled independently; a failure is recorded in the
        returned report and the sweep moves on.
        """
        report = SweepReport(label=f"aggregate {run_id}")
        try:
            keys = await self.measurements.measurement_keys(run_id)
        except OSError as e:
            logger.error("Could not list measurements of run %s: %s", run_id, e)
            report.failed("discover", run_id, e)
            return report

        steps = (
            ("by-library", sorted({lib for lib, _, _ in keys}), self.aggregate_by_library),
            ("by-scenario", sorted({scenario for _, _, scenario in keys}), self.aggregate_by_scenario),
            ("by-category", sorted({category for _, category, _ in keys}), self.aggregate_by_category),
        )
        for step, step_keys, aggregate in steps:
            for key in step_keys:
                try:
                    if await aggregate(key, run_id) is None:
                        report.skipped(step, key, "nothing to aggregate")
                    else:
                        report.ok(step, key)
                except (OSError, ValueError, KeyError) as e:
                    logger.error("Failed to aggregate %s %s: %s", step, key, e)
                    report.failed(step, key, e)
        return report
