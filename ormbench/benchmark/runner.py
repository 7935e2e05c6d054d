"""
Benchmark Runner

Drives every selected scenario against every library adapter, one library
at a time, and stores each finished metrics bundle through the
``StorageManager`` so the run ledger and the measurement store stay in step.

Per scenario: warmup iterations (unmeasured), then the measurement phase
with a background task sampling memory and CPU. Errors raised by a single
iteration are counted in the error histogram and never abort the scenario.
"""
from __future__ import annotations

import asyncio
import gc
import logging
import random
import time
from typing import Any, List, Optional, Sequence

from ormbench.config import BenchmarkConfig, LibraryConfig, ScenarioConfig
from ormbench.core.interfaces import LibraryAdapter
from ormbench.core.models import (
    BenchmarkMetrics,
    ErrorStats,
    LibraryInfo,
    RawMeasurement,
    RunMetadata,
    RunStatus,
    TestConfiguration,
)
from ormbench.manager import StorageManager
from ormbench.storage import RunSession

from .collector import MetricsCollector
from .scenarios import Scenario, ScenarioRegistry


class BenchmarkRunner:
    """
    Executes scenarios through library adapters and records the results.

    Libraries run sequentially, never concurrently, so one library's load
    never skews another's numbers.
    """

    def __init__(
        self,
        manager: StorageManager,
        registry: Optional[ScenarioRegistry] = None,
        config: Optional[BenchmarkConfig] = None,
        verbose: bool = False,
        pause_s: float = 0.0,
        seed: Optional[int] = None,
    ):
        self.manager = manager
        self.registry = registry or ScenarioRegistry()
        self.config = config or BenchmarkConfig()
        self.verbose = verbose
        self.pause_s = pause_s
        self.rng = random.Random(seed)
        self.logger = logging.getLogger("Benchmark")
        self._connected: List[LibraryAdapter] = []

    # ------------------------------------------------------------------
    # Context-manager support
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "BenchmarkRunner":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Disconnect every adapter this runner connected."""
        while self._connected:
            adapter = self._connected.pop()
            try:
                await adapter.disconnect()
            except Exception as e:
                self.logger.warning("Disconnect failed for %s: %s", adapter.id, e)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def planned_scenarios(self) -> List[Scenario]:
        """
        Registry scenarios to run, with iteration counts taken from the
        configuration when it lists the scenario.
        """
        if not self.config.scenarios:
            return self.registry.all()

        planned = []
        for cfg in self.config.enabled_scenarios:
            scenario = self.registry.get(cfg.id)
            if scenario is None:
                self.logger.warning("No implementation registered for scenario: %s", cfg.id)
                continue
            planned.append(Scenario(
                info=scenario.info,
                execute=scenario.execute,
                warmup_iterations=cfg.warmup_iterations,
                measurement_iterations=cfg.measurement_iterations,
            ))
        return planned

    def _library_config(self, library_id: str) -> Optional[LibraryConfig]:
        for lib in self.config.libraries:
            if lib.id == library_id:
                return lib
        return None

    def _test_configuration(self, scenario: Scenario, library_id: Optional[str] = None) -> TestConfiguration:
        scenario_cfg = ScenarioConfig(
            id=scenario.id,
            name=scenario.info.name,
            category=scenario.info.category,
            warmup_iterations=scenario.warmup_iterations,
            measurement_iterations=scenario.measurement_iterations,
        )
        library_cfg = self._library_config(library_id) if library_id else None
        return self.config.test_configuration(scenario_cfg, library_cfg)

    # ------------------------------------------------------------------
    # Run execution
    # ------------------------------------------------------------------

    async def run(
        self,
        adapters: Sequence[LibraryAdapter],
        triggered_by: str = "manual",
        notes: Optional[str] = None,
    ) -> RunMetadata:
        """
        Run every planned scenario for every adapter as one benchmark run.

        The run ends ``completed`` when every scenario succeeded, ``partial``
        when some failed and ``failed`` when an exception escaped (which is
        then re-raised).
        """
        scenarios = self.planned_scenarios()
        if not scenarios:
            raise ValueError("No scenarios selected")
        categories = sorted({s.info.category for s in scenarios})

        session = await self.manager.ledger.start_run(
            library_ids=[a.id for a in adapters],
            scenario_ids=[s.id for s in scenarios],
            categories=categories,
            config=self._test_configuration(scenarios[0]),
            triggered_by=triggered_by,
            notes=notes,
        )

        failures = 0
        try:
            for adapter in adapters:
                self.logger.info("=" * 60)
                self.logger.info("Testing library: %s@%s", adapter.name, adapter.version)
                self.logger.info("=" * 60)
                failures += await self._run_library(session, adapter, scenarios)
                await self._disconnect(adapter)
        except BaseException:
            self.logger.exception("Run %s aborted", session.run_id)
            await self.manager.ledger.end_run(session, RunStatus.FAILED.value)
            raise

        status = RunStatus.PARTIAL if failures else RunStatus.COMPLETED
        return await self.manager.ledger.end_run(session, status.value)

    async def _run_library(
        self, session: RunSession, adapter: LibraryAdapter, scenarios: Sequence[Scenario]
    ) -> int:
        """Run all scenarios for one adapter; returns the number that failed."""
        library = LibraryInfo(adapter.id, adapter.name, adapter.version)
        try:
            await self._ensure_connected(adapter)
        except Exception as e:
            self.logger.error("Cannot connect %s: %s", adapter.id, e)
            for scenario in scenarios:
                errors = ErrorStats()
                errors.record(type(e).__name__)
                await self.manager.record_result(
                    session, library, scenario.info, BenchmarkMetrics(errors=errors),
                    self._test_configuration(scenario, adapter.id),
                )
            return len(scenarios)

        failed = 0
        for i, scenario in enumerate(scenarios):
            if i and self.pause_s:
                await asyncio.sleep(self.pause_s)
            config = self._test_configuration(scenario, adapter.id)
            metrics, raw, duration_ms = await self.run_scenario(adapter, scenario, config)
            await self.manager.record_result(
                session, library, scenario.info, metrics, config,
                raw_data=raw, include_raw_data=self.config.include_raw_data,
                duration_ms=duration_ms,
            )
            if not metrics.succeeded:
                failed += 1
        return failed

    async def run_scenario(
        self, adapter: LibraryAdapter, scenario: Scenario, config: TestConfiguration
    ):
        """
        Warm up, then measure one scenario.

        Returns ``(metrics, raw_data, duration_ms)``.
        """
        self.logger.info("Running scenario: %s [%s@%s]", scenario.info.name, adapter.name, adapter.version)

        self.logger.info("  Warmup: %d iterations...", config.warmup_iterations)
        for _ in range(config.warmup_iterations):
            try:
                await scenario.execute(adapter, self.rng)
            except Exception as e:
                self.logger.debug("  Warmup iteration failed: %s", e)
        gc.collect()

        self.logger.info("  Measuring: %d iterations...", config.measurement_iterations)
        collector = MetricsCollector()
        raw: List[RawMeasurement] = []
        stop = asyncio.Event()
        collector.sample()
        sampler = asyncio.create_task(
            self._sample_loop(collector, config.memory_monitoring_interval_ms / 1000, stop)
        )

        collector.start()
        try:
            for i in range(config.measurement_iterations):
                error = None
                t0 = time.perf_counter()
                try:
                    await scenario.execute(adapter, self.rng)
                except Exception as e:
                    error = type(e).__name__
                    collector.record_error(error)
                    if self.verbose:
                        self.logger.exception("  Iteration %d failed", i)
                latency_ms = (time.perf_counter() - t0) * 1000
                if error is None:
                    collector.record_latency(latency_ms)
                if self.config.include_raw_data:
                    raw.append(RawMeasurement(
                        iteration=i, timestamp=time.time(), latency_ms=latency_ms, error=error,
                    ))
        finally:
            collector.end()
            stop.set()
            await sampler
        collector.sample()

        metrics = collector.get_metrics()
        if metrics.succeeded:
            self.logger.info("  Completed: %.0f RPS, p50: %.2fms, p95: %.2fms",
                             metrics.throughput.rps, metrics.latency.p50, metrics.latency.p95)
        else:
            self.logger.warning("  Completed with %d errors: %s",
                                metrics.errors.count, ", ".join(metrics.errors.types))
        return metrics, raw or None, collector.elapsed_ms

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _sample_loop(collector: MetricsCollector, interval_s: float, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_s)
            except asyncio.TimeoutError:
                collector.sample()

    async def _ensure_connected(self, adapter: LibraryAdapter) -> None:
        if adapter in self._connected and await adapter.health_check():
            return
        await adapter.connect()
        if adapter not in self._connected:
            self._connected.append(adapter)

    async def _disconnect(self, adapter: LibraryAdapter) -> None:
        if adapter in self._connected:
            self._connected.remove(adapter)
            try:
                await adapter.disconnect()
            except Exception as e:
                self.logger.warning("Disconnect failed for %s: %s", adapter.id, e)

