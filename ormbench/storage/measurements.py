"""
Measurement Store

Persists one document per (run, library, category, scenario) below
``runs/{run_id}/{library}/{category}/{scenario}.json`` and answers lookups
by run, by library within a run and by scenario within a run.

Absence is never an error here: a missing run, library or scenario yields
``None`` or an empty list. Write failures propagate to the caller.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple, Union

from ormbench.core.interfaces import IFileStore
from ormbench.core.models import (
    BenchmarkMetrics,
    BenchmarkResult,
    EnvironmentSnapshot,
    LibraryInfo,
    RawMeasurement,
    ResultMetadata,
    ScenarioInfo,
    TestConfiguration,
)
from ormbench.core.timeutil import Clock, isoformat, utc_now

from .ledger import RunSession
from .layout import StorageLayout

logger = logging.getLogger(__name__)


class MeasurementStore:
    """Read/write access to stored measurements."""

    def __init__(self, store: IFileStore, layout: StorageLayout, clock: Clock = utc_now):
        self.store = store
        self.layout = layout
        self.clock = clock

    # =========================================================================
    # Write
    # =========================================================================

    async def save(
        self,
        run: Union[RunSession, str],
        library: LibraryInfo,
        scenario: ScenarioInfo,
        metrics: BenchmarkMetrics,
        config: TestConfiguration,
        raw_data: Optional[Sequence[RawMeasurement]] = None,
        include_raw_data: bool = False,
        duration_ms: float = 0.0,
    ):
        """
        Write a measurement, replacing any earlier one with the same key.

        Args:
            run: open session, or the id of an existing run
            raw_data: per-iteration samples; persisted only when
                ``include_raw_data`` is set

        Returns:
            Path of the written document
        """
        if isinstance(run, RunSession):
            run_id, environment = run.run_id, run.metadata.environment
        else:
            run_id, environment = run, await self._run_environment(run)

        result = BenchmarkResult(
            metadata=ResultMetadata(
                run_id=run_id,
                timestamp=isoformat(self.clock()),
                library_id=library.id,
                library_name=library.name,
                library_version=library.version,
                scenario_id=scenario.id,
                scenario_name=scenario.name,
                category=scenario.category,
                environment=environment,
                duration_ms=duration_ms,
                success=metrics.succeeded,
                error=None if metrics.succeeded else "Errors occurred during test",
            ),
            metrics=metrics,
            configuration=config,
            raw_data=list(raw_data) if include_raw_data and raw_data is not None else None,
        )

        path = self.layout.measurement(run_id, library.id, scenario.category, scenario.id)
        await self.store.write_json(path, result.to_dict())
        logger.info("  Saved: %s/%s/%s", library.id, scenario.category, scenario.id)
        return path

    async def _run_environment(self, run_id: str) -> EnvironmentSnapshot:
        data = await self.store.read_json_optional(self.layout.run_metadata(run_id))
        if data is None:
            return EnvironmentSnapshot()
        return EnvironmentSnapshot.from_dict(data.get("environment"))

    # =========================================================================
    # Read
    # =========================================================================

    async def load(
        self, run_id: str, library_id: str, category: str, scenario_id: str
    ) -> Optional[BenchmarkResult]:
        data = await self.store.read_json_optional(
            self.layout.measurement(run_id, library_id, category, scenario_id)
        )
        return BenchmarkResult.from_dict(data) if data is not None else None

    async def library_ids(self, run_id: str) -> List[str]:
        """Libraries with at least one stored measurement directory in the run."""
        return await self.store.list_dirs(self.layout.run_dir(run_id))

    async def load_all_for_library(self, run_id: str, library_id: str) -> List[BenchmarkResult]:
        library_dir = self.layout.library_dir(run_id, library_id)
        results = []
        for category in await self.store.list_dirs(library_dir):
            for filename in await self.store.list_files(library_dir / category):
                data = await self.store.read_json(library_dir / category / filename)
                results.append(BenchmarkResult.from_dict(data))
        return results

    async def load_all_for_scenario(self, run_id: str, scenario_id: str) -> List[BenchmarkResult]:
        """Every library's measurement of *scenario_id*; libraries that never ran it are skipped."""
        results = []
        for library_id in await self.library_ids(run_id):
            library_dir = self.layout.library_dir(run_id, library_id)
            for category in await self.store.list_dirs(library_dir):
                data = await self.store.read_json_optional(
                    library_dir / category / f"{scenario_id}.json"
                )
                if data is not None:
                    results.append(BenchmarkResult.from_dict(data))
        return results

    async def measurement_keys(self, run_id: str) -> List[Tuple[str, str, str]]:
        """
        ``(library_id, category, scenario_id)`` of every stored measurement
        in the run, read from the directory layout without parsing documents.
        """
        keys = []
        for library_id in await self.library_ids(run_id):
            library_dir = self.layout.library_dir(run_id, library_id)
            for category in await self.store.list_dirs(library_dir):
                for filename in await self.store.list_files(library_dir / category):
                    keys.append((library_id, category, filename[: -len(".json")]))
        return keys

    async def load_all_for_category(self, run_id: str, category: str) -> List[BenchmarkResult]:
        results = []
        for library_id in await self.library_ids(run_id):
            category_dir = self.layout.library_dir(run_id, library_id) / category
            for filename in await self.store.list_files(category_dir):
                results.append(BenchmarkResult.from_dict(await self.store.read_json(category_dir / filename)))
        return results

    async def load_all_for_run(self, run_id: str) -> List[BenchmarkResult]:
        results = []
        for library_id in await self.library_ids(run_id):
            results.extend(await self.load_all_for_library(run_id, library_id))
        return results

    # =========================================================================
    # Runs
    # =========================================================================

    async def list_runs(self) -> List[str]:
        """Run ids, most recent first."""
        return sorted(await self.store.list_dirs(self.layout.runs_dir), reverse=True)

    async def latest_run_id(self) -> Optional[str]:
        runs = await self.list_runs()
        return runs[0] if runs else None

    async def run_exists(self, run_id: str) -> bool:
        return await self.store.exists(self.layout.run_dir(run_id))

    async def delete_run(self, run_id: str) -> None:
        await self.store.remove_tree(self.layout.run_dir(run_id))
        logger.info("Deleted run %s", run_id)
