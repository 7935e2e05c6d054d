"""
Projection Builder

Assembles the documents the dashboard reads from stored run metadata,
aggregates, comparisons and timelines:

* ``ui-data/latest/index.json``           runs, libraries, categories, scenarios
* ``ui-data/latest/dashboard.json``       top performers, category winners, alerts
* ``ui-data/comparisons/latest-all-libraries.json`` and ``{category}-only.json``
* ``ui-data/latest/{runs,libraries,scenarios}-list.json``

The builder keeps no state. Every document is replaced in full, and the
same stored inputs with the same clock give byte-identical output.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ormbench.aggregation.models import LibraryAggregate, ScenarioAggregate
from ormbench.comparison.models import LibraryComparison
from ormbench.core.interfaces import IFileStore
from ormbench.core.models import RunMetadata, Trend, category_display_name
from ormbench.core.numbers import mean
from ormbench.core.sweep import SweepReport
from ormbench.core.timeutil import Clock, isoformat, parse_iso, utc_now
from ormbench.history.models import LibraryTimeline
from ormbench.storage.layout import StorageLayout
from ormbench.storage.measurements import MeasurementStore

from .models import (
    CategoryListItem,
    CategoryWinner,
    LibraryListItem,
    PerformanceChange,
    RunListItem,
    ScenarioListItem,
    TopPerformer,
)

logger = logging.getLogger(__name__)

INDEX_VERSION = "1.0.0"
MAX_DASHBOARD_REGRESSIONS = 10
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_run_label(moment: datetime, now: datetime) -> str:
    """Human relative label: "Just now", "3 hours ago", "Yesterday", "Mar 4, 2025"."""
    hours = int((now - moment).total_seconds() // 3600)
    days = hours // 24
    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    return f"{_MONTHS[moment.month - 1]} {moment.day}, {moment.year}"


class ProjectionBuilder:
    """Writes the UI-facing JSON documents."""

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

    # =========================================================================
    # Collectors
    # =========================================================================

    async def _run_metadata(self, run_id: str) -> Optional[RunMetadata]:
        data = await self.store.read_json_optional(self.layout.run_metadata(run_id))
        return RunMetadata.from_dict(data) if data is not None else None

    async def collect_runs(self, now: datetime) -> List[RunListItem]:
        runs = []
        for run_id in await self.measurements.list_runs():
            metadata = await self._run_metadata(run_id)
            if metadata is None:
                logger.warning("Could not load metadata for run %s", run_id)
                continue
            started = parse_iso(metadata.timestamp) or now
            runs.append(RunListItem(
                run_id=metadata.run_id,
                timestamp=metadata.timestamp,
                label=format_run_label(started, now),
                libraries=metadata.library_ids,
                categories=list(metadata.configuration.enabled_categories),
                scenario_count=metadata.summary.total_scenarios,
                status=metadata.status.value,
            ))
        return sorted(runs, key=lambda r: (r.timestamp, r.run_id), reverse=True)

    async def _read_all(self, directory: Path) -> List[Dict[str, Any]]:
        return [
            await self.store.read_json(directory / name)
            for name in await self.store.list_files(directory)
        ]

    async def collect_libraries(self) -> List[LibraryListItem]:
        libraries: Dict[str, LibraryListItem] = {}
        for data in await self._read_all(self.layout.aggregated_dir / "by-library"):
            aggregate = LibraryAggregate.from_dict(data)
            libraries[aggregate.library_id] = LibraryListItem(
                id=aggregate.library_id,
                name=aggregate.library_name,
                version=aggregate.library_version,
                first_seen=aggregate.first_seen,
                last_tested=aggregate.last_tested,
                total_runs=aggregate.total_runs,
            )
        return sorted(libraries.values(), key=lambda lib: (lib.name, lib.id))

    async def _scenario_aggregates(self) -> List[ScenarioAggregate]:
        return [
            ScenarioAggregate.from_dict(data)
            for data in await self._read_all(self.layout.aggregated_dir / "by-scenario")
        ]

    async def collect_categories(self) -> List[CategoryListItem]:
        categories: Dict[str, CategoryListItem] = {}
        for aggregate in await self._scenario_aggregates():
            item = categories.setdefault(
                aggregate.category,
                CategoryListItem(aggregate.category, category_display_name(aggregate.category)),
            )
            item.scenario_count += 1
        return sorted(categories.values(), key=lambda c: (c.name, c.id))

    async def collect_scenarios(self) -> List[ScenarioListItem]:
        scenarios = [
            ScenarioListItem(a.scenario_id, a.scenario_name, a.category)
            for a in await self._scenario_aggregates()
        ]
        return sorted(scenarios, key=lambda s: (s.name, s.id))

    # =========================================================================
    # Index
    # =========================================================================

    async def build_index(self) -> Dict[str, Any]:
        now = self.clock()
        runs = await self.collect_runs(now)
        index = {
            "version": INDEX_VERSION,
            "generated": isoformat(now),
            "latest_run": {"run_id": runs[0].run_id, "timestamp": runs[0].timestamp} if runs else None,
            "available_runs": [asdict(r) for r in runs],
            "libraries": [asdict(lib) for lib in await self.collect_libraries()],
            "categories": [asdict(c) for c in await self.collect_categories()],
            "scenarios": [asdict(s) for s in await self.collect_scenarios()],
        }
        await self.store.write_json(self.layout.ui("latest", "index.json"), index)
        logger.info("  Index generated (%d runs)", len(runs))
        return index

    # =========================================================================
    # Dashboard
    # =========================================================================

    async def build_dashboard(self, run_id: str) -> Optional[Dict[str, Any]]:
        """Dashboard for *run_id*; None when the run has no metadata."""
        metadata = await self._run_metadata(run_id)
        if metadata is None:
            logger.warning("Could not load run metadata for dashboard: %s", run_id)
            return None

        now = self.clock()
        results = await self.measurements.load_all_for_run(run_id)
        library_ids = sorted({r.metadata.library_id for r in results})

        per_library: Dict[str, Dict[str, Any]] = {}
        per_category: Dict[str, Dict[str, List[float]]] = defaultdict(lambda: defaultdict(list))
        for result in results:
            if not result.metrics.measured:
                continue
            m = result.metadata
            stats = per_library.setdefault(m.library_id, {"name": m.library_name, "p50": [], "rps": []})
            stats["p50"].append(result.metrics.latency.p50)
            stats["rps"].append(result.metrics.throughput.rps)
            per_category[m.category][m.library_id].append(result.metrics.latency.p50)

        fastest, busiest = TopPerformer(), TopPerformer()
        if per_library:
            averages = {
                lib: (mean(s["p50"]), mean(s["rps"])) for lib, s in per_library.items()
            }
            lib = min(averages, key=lambda k: (averages[k][0], k))
            fastest = TopPerformer(lib, per_library[lib]["name"], averages[lib][0])
            lib = min(averages, key=lambda k: (-averages[k][1], k))
            busiest = TopPerformer(lib, per_library[lib]["name"], averages[lib][1])

        winners = []
        for category in sorted(per_category):
            averages = {lib: mean(v) for lib, v in per_category[category].items()}
            lib = min(averages, key=lambda k: (averages[k], k))
            winners.append(CategoryWinner(category, category_display_name(category), lib, averages[lib]))

        dashboard = {
            "generated": isoformat(now),
            "summary": {
                "total_runs": len(await self.measurements.list_runs()),
                "total_scenarios": len(await self.collect_scenarios()),
                "total_libraries": len(await self.collect_libraries()),
                "last_run_date": metadata.timestamp,
            },
            "latest_results": {
                "run_id": metadata.run_id,
                "timestamp": metadata.timestamp,
                "status": metadata.status.value,
                "top_performers": {"latency": asdict(fastest), "throughput": asdict(busiest)},
                "category_winners": [asdict(w) for w in winners],
            },
            "trends": {
                "period": "week",
                "performance_changes": [asdict(c) for c in await self._performance_changes(library_ids)],
            },
            "recent_regressions": await self._recent_regressions(),
        }
        await self.store.write_json(self.layout.ui("latest", "dashboard.json"), dashboard)
        logger.info("  Dashboard generated for %s", run_id)
        return dashboard

    async def _performance_changes(self, library_ids: List[str]) -> List[PerformanceChange]:
        """Non-stable scenario trends of the given libraries, largest change first."""
        changes = []
        for library_id in library_ids:
            data = await self.store.read_json_optional(self.layout.timeline(library_id))
            if data is None:
                continue
            timeline = LibraryTimeline.from_dict(data)
            for trend in timeline.trends:
                if trend.trend == Trend.STABLE.value:
                    continue
                changes.append(PerformanceChange(
                    library_id=library_id,
                    library_name=timeline.library_name,
                    scenario_id=trend.scenario_id,
                    scenario_name=trend.scenario_name,
                    metric="latency",
                    change=trend.latency_change,
                    trend=trend.trend,
                    data_points=trend.data_points,
                ))
        return sorted(changes, key=lambda c: (-abs(c.change), c.library_id, c.scenario_id))

    async def _recent_regressions(self) -> List[Dict[str, Any]]:
        report = await self.store.read_json_optional(
            self.layout.ui("historical", "regression-alerts.json")
        )
        if report is None:
            return []
        alerts = [a for group in report.get("regressions", []) for a in group.get("alerts", [])]
        alerts.sort(key=lambda a: a.get("timestamp", ""), reverse=True)
        return alerts[:MAX_DASHBOARD_REGRESSIONS]

    # =========================================================================
    # Comparison views
    # =========================================================================

    async def build_comparison_views(self, run_id: str) -> List[Path]:
        """
        Full comparison plus one document per category. Views left by an
        earlier run are removed first, so a run without a comparison leaves
        no comparison views behind.
        """
        await self.store.remove_tree(self.layout.ui("comparisons"))
        data = await self.store.read_json_optional(self.layout.library_comparison(run_id))
        if data is None:
            logger.warning("No library comparison for run %s; comparison views cleared", run_id)
            return []

        comparison = LibraryComparison.from_dict(data)
        written = [await self.store.write_json(
            self.layout.ui("comparisons", "latest-all-libraries.json"), comparison.to_dict()
        )]
        for category in sorted({s.category for s in comparison.scenarios}):
            view = comparison.for_category(category).to_dict()
            view["category"] = category
            written.append(await self.store.write_json(
                self.layout.ui("comparisons", f"{category}-only.json"), view
            ))

        logger.info("  Comparison views generated (%d documents)", len(written))
        return written

    # =========================================================================
    # Lists
    # =========================================================================

    async def build_lists(self) -> List[Path]:
        now = self.clock()
        generated = isoformat(now)
        documents = {
            "runs-list.json": {"runs": [asdict(r) for r in await self.collect_runs(now)]},
            "libraries-list.json": {"libraries": [asdict(lib) for lib in await self.collect_libraries()]},
            "scenarios-list.json": {"scenarios": [asdict(s) for s in await self.collect_scenarios()]},
        }
        written = []
        for name, body in documents.items():
            body["generated"] = generated
            written.append(await self.store.write_json(self.layout.ui("latest", name), body))
        return written

    async def build_all(self, run_id: str) -> SweepReport:
        """Index, dashboard, comparison views and lists for *run_id*."""
        report = SweepReport(label=f"ui-data {run_id}")
        steps = (
            ("index", self.build_index),
            ("dashboard", lambda: self.build_dashboard(run_id)),
            ("comparison-views", lambda: self.build_comparison_views(run_id)),
            ("lists", self.build_lists),
        )
        for step, build in steps:
            try:
                outcome = await build()
            except (OSError, ValueError, KeyError) as e:
                logger.error("UI data step %s failed: %s", step, e)
                report.failed(step, run_id, e)
                continue
            if outcome is None or outcome == []:
                report.skipped(step, run_id, "no input")
            else:
                report.ok(step, run_id)
        return report
