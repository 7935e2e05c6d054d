"""
Test Configuration and Fixtures
================================

Shared pytest fixtures for the ORM benchmark results store.

Usage:
    pytest tests/                    # Run all tests
    pytest tests/ -v                 # Verbose output
    pytest tests/ -k "comparator"    # Run only comparator tests
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional, Tuple

import pytest

ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))
sys.path.append(str(ROOT / "bin"))

from ormbench import StorageManager
from ormbench.core.models import (
    BenchmarkMetrics,
    ErrorStats,
    LatencyStats,
    LibraryInfo,
    ScenarioInfo,
    TestConfiguration,
    ThroughputStats,
)

FIXED_NOW = datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "slow: marks tests as slow")


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Deterministic clock; advances only when told to."""

    def __init__(self, start: datetime = FIXED_NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =============================================================================
# Builders
# =============================================================================

def make_metrics(
    p50: float,
    rps: float = 1000.0,
    p95: Optional[float] = None,
    errors: int = 0,
    total_requests: int = 1000,
) -> BenchmarkMetrics:
    error_stats = ErrorStats()
    for _ in range(errors):
        error_stats.record("QueryError")
    return BenchmarkMetrics(
        latency=LatencyStats(
            mean=p50,
            p50=p50,
            p95=p95 if p95 is not None else p50 * 1.5,
            p99=p50 * 2,
            p999=p50 * 3,
            min=p50 / 2,
            max=p50 * 4,
            stddev=p50 / 10,
        ),
        throughput=ThroughputStats(rps=rps, total_requests=total_requests),
        errors=error_stats,
    )


def library(library_id: str) -> LibraryInfo:
    """``libA-v1.2.0`` -> LibraryInfo("libA-v1.2.0", "libA", "1.2.0")."""
    name, _, version = library_id.partition("-v")
    return LibraryInfo(library_id, name, version or "1.0.0")


def scenario(scenario_id: str, category: str = "crud") -> ScenarioInfo:
    return ScenarioInfo(scenario_id, scenario_id.replace("_", " ").title(), category)


Entry = Tuple[str, str, str, BenchmarkMetrics]  # (library id, scenario id, category, metrics)


async def record_run(
    manager: StorageManager,
    entries: Iterable[Entry],
    status: str = "completed",
    triggered_by: str = "manual",
) -> str:
    """Start a run, store every entry through the manager and end it."""
    entries = list(entries)
    library_ids = list(dict.fromkeys(e[0] for e in entries))
    scenario_ids = list(dict.fromkeys(e[1] for e in entries))
    categories = sorted({e[2] for e in entries})

    session = await manager.ledger.start_run(
        library_ids=library_ids or ["none"],
        scenario_ids=scenario_ids or ["none"],
        categories=categories,
        config=TestConfiguration(warmup_iterations=10, measurement_iterations=100),
        triggered_by=triggered_by,
    )
    for library_id, scenario_id, category, metrics in entries:
        await manager.record_result(
            session, library(library_id), scenario(scenario_id, category), metrics,
            TestConfiguration(warmup_iterations=10, measurement_iterations=100),
        )
    await manager.ledger.end_run(session, status)
    return session.run_id


def run(coro):
    return asyncio.run(coro)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def results_dir(tmp_path) -> Path:
    return tmp_path / "benchmark-results"


@pytest.fixture
def manager(results_dir, clock) -> StorageManager:
    m = StorageManager(results_dir, clock=clock, capture_git=False)
    asyncio.run(m.initialize())
    return m


@pytest.fixture
def two_library_run(manager, clock) -> str:
    """libA beats libB on both crud scenarios; libB alone ran a relations scenario."""
    return asyncio.run(record_run(manager, [
        ("libA-v1.0.0", "select_by_id", "crud", make_metrics(1.0, rps=2000.0)),
        ("libB-v2.0.0", "select_by_id", "crud", make_metrics(2.0, rps=1000.0)),
        ("libA-v1.0.0", "insert_single", "crud", make_metrics(3.0, rps=800.0)),
        ("libB-v2.0.0", "insert_single", "crud", make_metrics(4.0, rps=700.0)),
        ("libB-v2.0.0", "join_posts", "relations", make_metrics(5.0, rps=300.0)),
    ]))
