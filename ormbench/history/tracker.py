"""
Historical Tracker

Maintains one timeline document per library
(``aggregated/comparisons/historical/{library}-timeline.json``). Each update
adds the run's data point, recomputes the trend of every scenario ever seen
and recomputes regression alerts from the two newest data points, then
rewrites the document in full.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence

from ormbench.aggregation.aggregator import latest_per
from ormbench.core.interfaces import IFileStore
from ormbench.core.numbers import latency_trend, mean, percent_change
from ormbench.core.sweep import SweepReport
from ormbench.core.timeutil import Clock, isoformat, parse_run_id, utc_now
from ormbench.storage.layout import StorageLayout
from ormbench.storage.measurements import MeasurementStore

from .models import (
    LibraryTimeline,
    RegressionAlert,
    ScenarioPoint,
    ScenarioTrend,
    Severity,
    TimelineDataPoint,
)

logger = logging.getLogger(__name__)

# A regression is reported once a change exceeds this many percent.
REGRESSION_THRESHOLD_PCT = 10.0
WARNING_THRESHOLD_PCT = 25.0
CRITICAL_THRESHOLD_PCT = 50.0


def regression_severity(change_pct: float) -> Optional[Severity]:
    """Severity for an adverse change of *change_pct* percent, or None below the threshold."""
    if change_pct > CRITICAL_THRESHOLD_PCT:
        return Severity.CRITICAL
    if change_pct > WARNING_THRESHOLD_PCT:
        return Severity.WARNING
    if change_pct > REGRESSION_THRESHOLD_PCT:
        return Severity.MINOR
    return None


def compute_trends(data_points: Sequence[TimelineDataPoint]) -> List[ScenarioTrend]:
    """Trend per scenario with at least two data points, sorted by scenario id."""
    series: Dict[str, List[ScenarioPoint]] = defaultdict(list)
    for point in data_points:
        for scenario in point.scenarios:
            series[scenario.scenario_id].append(scenario)

    trends = []
    for scenario_id in sorted(series):
        points = series[scenario_id]
        if len(points) < 2:
            continue
        first, last = points[0].metrics, points[-1].metrics
        latency_change = percent_change(first.latency.p50, last.latency.p50)
        trends.append(ScenarioTrend(
            scenario_id=scenario_id,
            scenario_name=points[-1].scenario_name,
            trend=latency_trend(latency_change).value,
            avg_latency_p50=mean(p.metrics.latency.p50 for p in points),
            avg_latency_p95=mean(p.metrics.latency.p95 for p in points),
            avg_throughput=mean(p.metrics.throughput.rps for p in points),
            latency_change=latency_change,
            throughput_change=percent_change(first.throughput.rps, last.throughput.rps),
            data_points=len(points),
        ))
    return trends


def compute_regressions(library_id: str, data_points: Sequence[TimelineDataPoint]) -> List[RegressionAlert]:
    """
    Alerts from the last two data points. Latency increase and throughput
    decrease are judged independently, so a scenario may raise two alerts.
    """
    if len(data_points) < 2:
        return []
    previous, current = data_points[-2], data_points[-1]

    alerts = []
    for scenario in current.scenarios:
        before = previous.scenario(scenario.scenario_id)
        if before is None:
            continue
        changes = (
            ("latency", percent_change(before.metrics.latency.p50, scenario.metrics.latency.p50)),
            ("throughput", -percent_change(before.metrics.throughput.rps, scenario.metrics.throughput.rps)),
        )
        for metric, adverse_change in changes:
            severity = regression_severity(adverse_change)
            if severity is None:
                continue
            alerts.append(RegressionAlert(
                library_id=library_id,
                scenario_id=scenario.scenario_id,
                scenario_name=scenario.scenario_name,
                metric=metric,
                severity=severity.value,
                change_percentage=adverse_change,
                from_run=previous.run_id,
                to_run=current.run_id,
                timestamp=current.timestamp,
            ))
    return alerts


def _sort_alerts(alerts: List[RegressionAlert]) -> List[RegressionAlert]:
    return sorted(
        alerts,
        key=lambda a: (Severity(a.severity).rank, a.library_id, a.scenario_id, a.metric),
    )


class HistoricalTracker:
    """Timelines, trends and regression alerts across runs."""

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

    async def load_timeline(self, library_id: str) -> Optional[LibraryTimeline]:
        data = await self.store.read_json_optional(self.layout.timeline(library_id))
        return LibraryTimeline.from_dict(data) if data is not None else None

    # =========================================================================
    # Timelines
    # =========================================================================

    async def update_timeline(self, run_id: str, library_id: str) -> Optional[LibraryTimeline]:
        """
        Add (or replace) the data point of *run_id* in the library's timeline.

        Returns None when the run holds no results for the library.
        """
        results = await self.measurements.load_all_for_library(run_id, library_id)
        if not results:
            logger.warning("No results for %s in run %s", library_id, run_id)
            return None

        by_scenario = latest_per(results, lambda r: r.metadata.scenario_id)
        ordered = [by_scenario[s] for s in sorted(by_scenario)]
        point = TimelineDataPoint(
            run_id=run_id,
            timestamp=min(r.metadata.timestamp for r in ordered),
            scenarios=[
                ScenarioPoint(
                    scenario_id=r.metadata.scenario_id,
                    scenario_name=r.metadata.scenario_name,
                    category=r.metadata.category,
                    metrics=r.metrics,
                )
                for r in ordered
            ],
            environment=ordered[0].metadata.environment,
        )

        existing = await self.load_timeline(library_id)
        data_points = list(existing.data_points) if existing else []
        replaced = False
        for i, dp in enumerate(data_points):
            if dp.run_id == run_id:
                data_points[i] = point
                replaced = True
        if not replaced:
            data_points.append(point)

        newest = ordered[-1].metadata
        timeline = LibraryTimeline(
            library_id=library_id,
            library_name=newest.library_name,
            library_version=newest.library_version,
            data_points=data_points,
            trends=compute_trends(data_points),
            regressions=compute_regressions(library_id, data_points),
            generated=isoformat(self.clock()),
        )
        await self.store.write_json(self.layout.timeline(library_id), timeline.to_dict())
        logger.info("  Updated timeline: %s (%d data points)", library_id, len(data_points))
        return timeline

    async def update_timelines(self, run_id: str, library_ids: Sequence[str]) -> SweepReport:
        report = SweepReport(label=f"timelines {run_id}")
        for library_id in library_ids:
            try:
                if await self.update_timeline(run_id, library_id) is None:
                    report.skipped("timeline", library_id, "no results")
                else:
                    report.ok("timeline", library_id)
            except (OSError, ValueError, KeyError) as e:
                logger.error("  Timeline update failed for %s: %s", library_id, e)
                report.failed("timeline", library_id, e)
        return report

    # =========================================================================
    # Regressions
    # =========================================================================

    async def detect_regressions(self, run_id: str) -> List[RegressionAlert]:
        """Alerts raised by *run_id* across every library it measured."""
        alerts: List[RegressionAlert] = []
        for library_id in await self.measurements.library_ids(run_id):
            timeline = await self.load_timeline(library_id)
            if timeline is None:
                continue
            alerts.extend(a for a in timeline.regressions if a.to_run == run_id)

        alerts = _sort_alerts(alerts)
        if alerts:
            logger.warning("Detected %d regressions in run %s", len(alerts), run_id)
            for alert in alerts:
                logger.warning("  [%s] %s/%s: %s +%.1f%%", alert.severity, alert.library_id,
                               alert.scenario_id, alert.metric, alert.change_percentage)
        else:
            logger.info("No regressions detected in run %s", run_id)
        return alerts

    async def write_regression_report(self, run_id: str) -> Dict[str, Any]:
        """Write ``ui-data/historical/regression-alerts.json`` grouped by severity."""
        alerts = await self.detect_regressions(run_id)
        grouped = {s.value: [asdict(a) for a in alerts if a.severity == s.value] for s in Severity}
        report = {
            "run_id": run_id,
            "generated": isoformat(self.clock()),
            "summary": {
                "total": len(alerts),
                "critical": len(grouped["critical"]),
                "warning": len(grouped["warning"]),
                "minor": len(grouped["minor"]),
            },
            "regressions": [
                {"severity": severity, "alerts": grouped[severity]}
                for severity in ("critical", "warning", "minor")
            ],
        }
        await self.store.write_json(self.layout.ui("historical", "regression-alerts.json"), report)
        return report

    # =========================================================================
    # Summaries
    # =========================================================================

    async def weekly_summary(self) -> Dict[str, Any]:
        """Runs of the last seven days and each library's average over them."""
        now = self.clock()
        since = now - timedelta(days=7)
        recent = []
        for run_id in sorted(await self.measurements.list_runs()):
            started = parse_run_id(run_id)
            if started is not None and since <= started <= now:
                recent.append(run_id)

        per_library: Dict[str, Dict[str, List[float]]] = defaultdict(lambda: {"p50": [], "rps": []})
        for run_id in recent:
            results = await self.measurements.load_all_for_run(run_id)
            grouped: Dict[str, list] = defaultdict(list)
            for result in results:
                grouped[result.metadata.library_id].append(result)
            for library_id, group in grouped.items():
                per_library[library_id]["p50"].append(mean(r.metrics.latency.p50 for r in group))
                per_library[library_id]["rps"].append(mean(r.metrics.throughput.rps for r in group))

        summary = {
            "period": "week",
            "start_date": isoformat(since),
            "end_date": isoformat(now),
            "total_runs": len(recent),
            "runs": recent,
            "libraries": [
                {
                    "library_id": library_id,
                    "runs": len(per_library[library_id]["p50"]),
                    "average_latency_p50": mean(per_library[library_id]["p50"]),
                    "average_throughput": mean(per_library[library_id]["rps"]),
                }
                for library_id in sorted(per_library)
            ],
            "generated": isoformat(now),
        }
        await self.store.write_json(self.layout.ui("historical", "weekly-summary.json"), summary)
        logger.info("Weekly summary: %d runs in the last week", len(recent))
        return summary
