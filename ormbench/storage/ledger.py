"""
Run Ledger

Owns the lifecycle of a benchmark run: ``start_run`` opens a ``RunSession``,
``record_measurement_outcome`` updates its counters as measurements land and
``end_run`` finalizes it exactly once.

The session is an explicit value passed to every call. A ledger instance
accepts at most one open session at a time; every mutation rewrites the
run's ``metadata.json`` in full.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from ormbench.core.environment import capture_environment, capture_git_info
from ormbench.core.interfaces import IFileStore
from ormbench.core.models import (
    LibraryInfo,
    RunConfiguration,
    RunMetadata,
    RunStatus,
    TestConfiguration,
    TestedLibrarySummary,
    TriggerSource,
)
from ormbench.core.timeutil import Clock, format_run_id, isoformat, parse_iso, utc_now

from .layout import StorageLayout

logger = logging.getLogger(__name__)


@dataclass
class RunSession:
    """Handle for an open run; returned by ``RunLedger.start_run``."""

    run_id: str
    metadata: RunMetadata
    started_at: datetime
    closed: bool = False
    _owner: Any = field(default=None, repr=False, compare=False)


class RunLedger:
    """Creates, updates and finalizes run metadata documents."""

    def __init__(
        self,
        store: IFileStore,
        layout: StorageLayout,
        clock: Clock = utc_now,
        capture_git: bool = True,
    ):
        self.store = store
        self.layout = layout
        self.clock = clock
        self.capture_git = capture_git
        self._open: Optional[RunSession] = None

    @property
    def current(self) -> Optional[RunSession]:
        return self._open

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start_run(
        self,
        library_ids: Sequence[str],
        scenario_ids: Sequence[str],
        categories: Sequence[str],
        config: TestConfiguration,
        triggered_by: str = "manual",
        notes: Optional[str] = None,
    ) -> RunSession:
        """
        Open a new run and write its initial metadata with status ``running``.

        Raises:
            ValueError: no libraries or no scenarios were requested
            RuntimeError: this ledger already has an open run
        """
        if not library_ids:
            raise ValueError("A run needs at least one library")
        if not scenario_ids:
            raise ValueError("A run needs at least one scenario")
        if self._open is not None:
            raise RuntimeError(f"Run {self._open.run_id} is still open; end it first")

        moment = self.clock()
        run_id = await self._allocate_run_id(moment)
        await self.store.makedirs(self.layout.run_dir(run_id))

        started = isoformat(moment)
        git_info = await asyncio.to_thread(capture_git_info) if self.capture_git else None
        metadata = RunMetadata(
            run_id=run_id,
            timestamp=started,
            start_time=started,
            status=RunStatus.RUNNING,
            triggered_by=TriggerSource.from_string(triggered_by),
            environment=capture_environment(
                connection_pool_size=config.connection_pool_size, moment=moment
            ),
            configuration=RunConfiguration.from_test_configuration(
                config, list(categories), list(scenario_ids)
            ),
            git_info=git_info,
            notes=notes,
        )

        session = RunSession(run_id=run_id, metadata=metadata, started_at=moment, _owner=self)
        await self._write(metadata)
        self._open = session

        logger.info("Started run %s (%d libraries, %d scenarios)",
                    run_id, len(library_ids), len(scenario_ids))
        return session

    async def record_measurement_outcome(
        self,
        session: RunSession,
        library: LibraryInfo,
        scenario_id: str,
        success: bool,
        total_requests: int = 0,
    ) -> None:
        """Upsert the library's summary row and bump the run counters."""
        self._check_open(session)
        metadata = session.metadata

        row = metadata.library_summary(library.id)
        if row is None:
            row = TestedLibrarySummary(
                library_id=library.id, name=library.name, version=library.version
            )
            metadata.tested_libraries.append(row)

        row.scenarios_run += 1
        if success:
            row.scenarios_succeeded += 1
            metadata.summary.successful_tests += 1
        else:
            row.scenarios_failed += 1
            metadata.summary.failed_tests += 1

        metadata.summary.total_scenarios += 1
        metadata.summary.total_measurements += int(total_requests)

        await self._write(metadata)
        logger.debug("Recorded %s/%s (success=%s) in run %s",
                     library.id, scenario_id, success, session.run_id)

    async def end_run(self, session: RunSession, status: str = "completed") -> RunMetadata:
        """
        Finalize the run: write end time, duration and a terminal status.

        Raises:
            ValueError: *status* is not a terminal status
            RuntimeError: the session is already closed or not owned here
        """
        final = RunStatus(status)
        if not final.is_terminal:
            raise ValueError(f"Cannot end a run with status '{status}'")
        self._check_open(session)

        metadata = session.metadata
        metadata.end_time = isoformat(self.clock())
        metadata.duration_ms = _elapsed_ms(metadata.start_time, metadata.end_time)
        metadata.status = final

        await self._write(metadata)
        session.closed = True
        self._open = None
        await self.refresh_runs_index()

        logger.info("Run %s finished: %s in %.0f ms", session.run_id, final.value, metadata.duration_ms)
        return metadata

    # =========================================================================
    # Queries
    # =========================================================================

    async def load_run_metadata(self, run_id: str) -> Optional[RunMetadata]:
        data = await self.store.read_json_optional(self.layout.run_metadata(run_id))
        if data is None:
            return None
        return RunMetadata.from_dict(data)

    async def list_run_ids(self) -> List[str]:
        """Run ids, newest first."""
        return sorted(await self.store.list_dirs(self.layout.runs_dir), reverse=True)

    async def refresh_runs_index(self) -> Dict[str, Any]:
        """Rebuild ``metadata/runs-index.json`` from every run's metadata."""
        entries = []
        for run_id in await self.list_run_ids():
            metadata = await self.load_run_metadata(run_id)
            if metadata is None:
                continue
            entries.append({
                "run_id": metadata.run_id,
                "timestamp": metadata.timestamp,
                "status": metadata.status.value,
                "libraries": metadata.library_ids,
                "scenarios": metadata.summary.total_scenarios,
                "duration_ms": metadata.duration_ms,
            })

        index = {
            "runs": entries,
            "total_runs": len(entries),
            "oldest_run": entries[-1]["run_id"] if entries else None,
            "newest_run": entries[0]["run_id"] if entries else None,
        }
        await self.store.write_json(self.layout.runs_index, index)
        return index

    async def reclaim_stale_runs(self, max_age: timedelta) -> List[str]:
        """
        Mark runs left in ``running`` for longer than *max_age* as ``failed``.

        A process that dies mid-run never calls ``end_run``; this is the
        only path that closes such runs. The ledger's own open session is
        never touched.
        """
        now = self.clock()
        reclaimed = []
        for run_id in await self.list_run_ids():
            if self._open is not None and self._open.run_id == run_id:
                continue
            metadata = await self.load_run_metadata(run_id)
            if metadata is None or metadata.status is not RunStatus.RUNNING:
                continue
            started = parse_iso(metadata.start_time)
            if started is None or now - started <= max_age:
                continue

            metadata.status = RunStatus.FAILED
            metadata.end_time = isoformat(now)
            metadata.duration_ms = _elapsed_ms(metadata.start_time, metadata.end_time)
            metadata.notes = "; ".join(filter(None, [metadata.notes, "reclaimed: run never ended"]))
            await self._write(metadata)
            reclaimed.append(run_id)
            logger.warning("Reclaimed stale run %s (started %s)", run_id, metadata.start_time)

        if reclaimed:
            await self.refresh_runs_index()
        return reclaimed

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _allocate_run_id(self, moment: datetime) -> str:
        sequence = 0
        while True:
            run_id = format_run_id(moment, sequence)
            if not await self.store.exists(self.layout.run_dir(run_id)):
                return run_id
            sequence += 1

    def _check_open(self, session: RunSession) -> None:
        if session.closed:
            raise RuntimeError(f"Run {session.run_id} has already ended")
        if session._owner is not self or self._open is not session:
            raise RuntimeError(f"Run {session.run_id} is not open on this ledger")

    async def _write(self, metadata: RunMetadata) -> None:
        await self.store.write_json(self.layout.run_metadata(metadata.run_id), metadata.to_dict())


def _elapsed_ms(start: str, end: str) -> float:
    started, ended = parse_iso(start), parse_iso(end)
    if started is None or ended is None:
        return 0.0
    return round((ended - started).total_seconds() * 1000, 3)
