"""
Storage Manager

High-level orchestration over the results store: runs the full aggregation
workflow for a run, regenerates everything from history, compares, detects
regressions, cleans up old runs and moves runs in and out as export files.

Batch operations never stop at the first failure. Each one returns a
``SweepReport`` listing the outcome of every step and key.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ormbench.aggregation import Aggregator
from ormbench.comparison import Comparator, RunComparison, VersionComparison
from ormbench.core.interfaces import IFileStore
from ormbench.core.models import (
    BenchmarkMetrics,
    BenchmarkResult,
    LibraryInfo,
    RawMeasurement,
    RunMetadata,
    ScenarioInfo,
    TestConfiguration,
)
from ormbench.core.sweep import SweepReport
from ormbench.core.timeutil import Clock, isoformat, parse_run_id, utc_now
from ormbench.history import HistoricalTracker, RegressionAlert
from ormbench.projection import ProjectionBuilder
from ormbench.storage import LocalFileStore, MeasurementStore, RunLedger, RunSession, StorageLayout

logger = logging.getLogger(__name__)


@dataclass
class CleanupOptions:
    """Which runs to remove. At least one of the two criteria must be set."""

    older_than_days: Optional[int] = None
    keep_latest: Optional[int] = None
    dry_run: bool = False
    archive_before_delete: bool = False

    def validate(self) -> None:
        if self.older_than_days is None and self.keep_latest is None:
            raise ValueError("Specify older_than_days and/or keep_latest")
        if self.older_than_days is not None and self.older_than_days < 0:
            raise ValueError("older_than_days must not be negative")
        if self.keep_latest is not None and self.keep_latest < 1:
            raise ValueError("keep_latest must be at least 1")


@dataclass
class StorageStats:
    total_runs: int = 0
    total_results: int = 0
    oldest_run: Optional[str] = None
    newest_run: Optional[str] = None
    runs_by_status: List[Dict[str, Any]] = field(default_factory=list)
    disk_usage: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(area["bytes"] for area in self.disk_usage)


class StorageManager:
    """Composes ledger, store, aggregator, comparator, tracker and projection."""

    def __init__(
        self,
        base_dir: Union[str, Path] = "benchmark-results",
        clock: Clock = utc_now,
        store: Optional[IFileStore] = None,
        capture_git: bool = True,
    ):
        self.clock = clock
        self.store = store or LocalFileStore()
        self.layout = StorageLayout(base_dir)
        self.ledger = RunLedger(self.store, self.layout, clock=clock, capture_git=capture_git)
        self.measurements = MeasurementStore(self.store, self.layout, clock=clock)
        self.aggregator = Aggregator(self.store, self.layout, self.measurements, clock=clock)
        self.comparator = Comparator(self.store, self.layout, self.measurements, clock=clock)
        self.tracker = HistoricalTracker(self.store, self.layout, self.measurements, clock=clock)
        self.projection = ProjectionBuilder(self.store, self.layout, self.measurements, clock=clock)

    @property
    def base_dir(self) -> Path:
        return self.layout.base_dir

    async def initialize(self) -> None:
        await self.layout.initialize(self.store)
        logger.info("Storage initialized at %s", self.base_dir)

    async def record_result(
        self,
        session: RunSession,
        library: LibraryInfo,
        scenario: ScenarioInfo,
        metrics: BenchmarkMetrics,
        config: TestConfiguration,
        raw_data: Optional[Sequence[RawMeasurement]] = None,
        include_raw_data: bool = False,
        duration_ms: float = 0.0,
    ) -> Path:
        """Save a measurement and count it in the run's metadata."""
        path = await self.measurements.save(
            session, library, scenario, metrics, config,
            raw_data=raw_data, include_raw_data=include_raw_data, duration_ms=duration_ms,
        )
        await self.ledger.record_measurement_outcome(
            session, library, scenario.id, metrics.succeeded, metrics.throughput.total_requests
        )
        return path

    async def require_run(self, run_id: str) -> RunMetadata:
        metadata = await self.ledger.load_run_metadata(run_id)
        if metadata is None:
            raise LookupError(f"Run not found: {run_id}")
        return metadata

    async def resolve_run(self, run_id: Optional[str] = None) -> str:
        """*run_id*, or the latest run; raises LookupError when there is none."""
        if run_id:
            await self.require_run(run_id)
            return run_id
        latest = await self.measurements.latest_run_id()
        if latest is None:
            raise LookupError("No runs found")
        return latest

    # =========================================================================
    # Aggregation workflow
    # =========================================================================

    async def generate_all_aggregations(self, run_id: str) -> SweepReport:
        """
        Aggregates, comparison, timelines, regression report and UI data for
        one run, in that order.

        Raises:
            LookupError: the run does not exist
        """
        metadata = await self.require_run(run_id)
        start = time.perf_counter()
        logger.info("=" * 60)
        logger.info("Generating all aggregations for run %s (%s)", run_id, metadata.status.value)
        logger.info("=" * 60)

        report = SweepReport(label=f"aggregations {run_id}")
        report.extend(await self.aggregator.aggregate_run(run_id))

        try:
            if await self.comparator.compare_libraries(run_id) is None:
                report.skipped("comparison", run_id, "fewer than 2 libraries")
            else:
                report.ok("comparison", run_id)
        except (OSError, ValueError, KeyError) as e:
            logger.error("Library comparison failed for %s: %s", run_id, e)
            report.failed("comparison", run_id, e)

        library_ids = await self.measurements.library_ids(run_id)
        report.extend(await self.tracker.update_timelines(run_id, library_ids))

        try:
            await self.tracker.write_regression_report(run_id)
            report.ok("regressions", run_id)
        except (OSError, ValueError, KeyError) as e:
            logger.error("Regression report failed for %s: %s", run_id, e)
            report.failed("regressions", run_id, e)

        report.extend(await self.projection.build_all(run_id))

        logger.info("Aggregations for %s done in %.2fs: %d ok, %d skipped, %d failed",
                    run_id, time.perf_counter() - start,
                    len(report.succeeded), len(report.skips), len(report.failures))
        return report

    async def generate_latest_aggregations(self) -> SweepReport:
        return await self.generate_all_aggregations(await self.resolve_run())

    async def regenerate_all_aggregations(self, fresh: bool = True) -> SweepReport:
        """
        Rebuild every derived document from stored runs, oldest run first so
        histories and timelines grow in order.

        With *fresh* the aggregated tree is cleared beforehand; it holds only
        derived data.
        """
        runs = list(reversed(await self.measurements.list_runs()))
        logger.info("Regenerating aggregations from %d runs", len(runs))
        if fresh:
            await self.store.remove_tree(self.layout.aggregated_dir)
            await self.layout.initialize(self.store)

        report = SweepReport(label="regenerate all")
        for i, run_id in enumerate(runs, 1):
            logger.info("Processing run %d/%d: %s", i, len(runs), run_id)
            try:
                report.extend(await self.generate_all_aggregations(run_id))
            except LookupError as e:
                logger.error("Failed to process run %s: %s", run_id, e)
                report.failed("run", run_id, e)
        return report

    # =========================================================================
    # Comparisons & regressions
    # =========================================================================

    async def compare_versions(self, library_name: str, versions: Sequence[str]) -> VersionComparison:
        return await self.comparator.compare_versions(library_name, versions)

    async def compare_runs(self, run_a: str, run_b: str) -> Optional[RunComparison]:
        await self.require_run(run_a)
        await self.require_run(run_b)
        return await self.comparator.compare_runs(run_a, run_b)

    async def detect_regressions(self, run_id: Optional[str] = None) -> List[RegressionAlert]:
        return await self.tracker.detect_regressions(await self.resolve_run(run_id))

    async def reclaim_stale_runs(self, max_age_hours: float = 24.0) -> List[str]:
        return await self.ledger.reclaim_stale_runs(timedelta(hours=max_age_hours))

    # =========================================================================
    # Cleanup
    # =========================================================================

    async def cleanup(self, options: CleanupOptions) -> List[str]:
        """
        Delete runs by age and/or beyond the newest N.

        Returns the affected run ids (the candidates when ``dry_run`` is set).
        A run currently open on this manager's ledger is never touched.
        """
        options.validate()
        runs = await self.measurements.list_runs()
        now = self.clock()

        candidates: List[str] = []
        if options.older_than_days is not None:
            cutoff = now - timedelta(days=options.older_than_days)
            for run_id in runs:
                started = parse_run_id(run_id)
                if started is not None and started < cutoff:
                    candidates.append(run_id)
        if options.keep_latest is not None:
            candidates.extend(runs[options.keep_latest:])

        current = self.ledger.current.run_id if self.ledger.current else None
        to_delete = [r for r in dict.fromkeys(candidates) if r != current]
        if not to_delete:
            logger.info("No runs to delete")
            return []

        logger.info("Runs to delete: %d", len(to_delete))
        if options.dry_run:
            for run_id in to_delete:
                logger.info("  - %s (dry run)", run_id)
            return to_delete

        deleted = []
        for run_id in to_delete:
            try:
                if options.archive_before_delete:
                    archive = await self.store.make_archive(
                        self.layout.run_dir(run_id), self.layout.archive(run_id)
                    )
                    logger.info("  Archived %s to %s", run_id, archive)
                await self.measurements.delete_run(run_id)
                deleted.append(run_id)
            except OSError as e:
                logger.error("  Failed to delete %s: %s", run_id, e)

        await self.ledger.refresh_runs_index()
        logger.info("Cleanup completed: %d runs deleted", len(deleted))
        return deleted

    # =========================================================================
    # Statistics & summaries
    # =========================================================================

    async def get_statistics(self) -> StorageStats:
        runs = await self.measurements.list_runs()
        statuses: Dict[str, int] = {}
        with_metadata = 0
        for run_id in runs:
            metadata = await self.ledger.load_run_metadata(run_id)
            if metadata is None:
                continue
            with_metadata += 1
            statuses[metadata.status.value] = statuses.get(metadata.status.value, 0) + 1

        areas = (
            ("runs", self.layout.runs_dir),
            ("aggregated", self.layout.aggregated_dir),
            ("ui-data", self.layout.ui_data_dir),
            ("metadata", self.layout.metadata_dir),
            ("archive", self.layout.archive_dir),
        )
        return StorageStats(
            total_runs=len(runs),
            total_results=await self.store.count_files(self.layout.runs_dir) - with_metadata,
            oldest_run=runs[-1] if runs else None,
            newest_run=runs[0] if runs else None,
            runs_by_status=[{"status": s, "count": statuses[s]} for s in sorted(statuses)],
            disk_usage=[
                {"area": name, "bytes": await self.store.disk_usage(path)} for name, path in areas
            ],
        )

    async def get_run_summary(self, run_id: str) -> Dict[str, Any]:
        metadata = await self.require_run(run_id)
        return {
            "run_id": metadata.run_id,
            "status": metadata.status.value,
            "triggered_by": metadata.triggered_by.value,
            "started": metadata.start_time,
            "ended": metadata.end_time,
            "duration_s": round(metadata.duration_ms / 1000, 2),
            "libraries": [
                {
                    "library_id": lib.library_id,
                    "name": lib.name,
                    "version": lib.version,
                    "scenarios_run": lib.scenarios_run,
                    "scenarios_succeeded": lib.scenarios_succeeded,
                    "scenarios_failed": lib.scenarios_failed,
                }
                for lib in metadata.tested_libraries
            ],
            "summary": {
                "total_scenarios": metadata.summary.total_scenarios,
                "total_measurements": metadata.summary.total_measurements,
                "successful_tests": metadata.summary.successful_tests,
                "failed_tests": metadata.summary.failed_tests,
            },
            "notes": metadata.notes,
        }

    # =========================================================================
    # Export / import
    # =========================================================================

    async def export_run(self, run_id: str, output_path: Union[str, Path]) -> Path:
        """Write run metadata plus every measurement to one JSON file."""
        metadata = await self.require_run(run_id)
        results = sorted(await self.measurements.load_all_for_run(run_id), key=lambda r: r.key)
        export = {
            "metadata": metadata.to_dict(),
            "results": [r.to_dict() for r in results],
            "exported_at": isoformat(self.clock()),
        }
        path = await self.store.write_json(Path(output_path), export)
        logger.info("Run %s exported to %s (%d results)", run_id, path, len(results))
        return path

    async def import_run(self, input_path: Union[str, Path]) -> str:
        """
        Restore a run written by ``export_run``.

        Raises:
            ValueError: the file is not a run export, or the run already exists
        """
        data = await self.store.read_json(Path(input_path))
        try:
            metadata = RunMetadata.from_dict(data["metadata"])
            results = [BenchmarkResult.from_dict(r) for r in data.get("results", [])]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Not a run export: {input_path} ({e})") from e

        if await self.measurements.run_exists(metadata.run_id):
            raise ValueError(f"Run already exists: {metadata.run_id}")

        await self.store.write_json(self.layout.run_metadata(metadata.run_id), metadata.to_dict())
        for result in results:
            m = result.metadata
            await self.store.write_json(
                self.layout.measurement(metadata.run_id, m.library_id, m.category, m.scenario_id),
                result.to_dict(),
            )
        await self.ledger.refresh_runs_index()
        logger.info("Imported run %s (%d results)", metadata.run_id, len(results))
        return metadata.run_id
