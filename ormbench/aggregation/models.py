"""
Aggregate Data Models

Derived, rebuildable views over stored measurements: by library (with a
history of earlier snapshots), by scenario and by category.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from ormbench.core.models import BenchmarkMetrics


# =============================================================================
# By-library
# =============================================================================

@dataclass
class ScenarioSummary:
    scenario_id: str
    scenario_name: str
    category: str
    metrics: BenchmarkMetrics
    run_count: int = 1
    last_run: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "scenario_name": self.scenario_name,
            "category": self.category,
            "metrics": self.metrics.to_dict(),
            "run_count": self.run_count,
            "last_run": self.last_run,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioSummary":
        return cls(
            scenario_id=data["scenario_id"],
            scenario_name=data.get("scenario_name", data["scenario_id"]),
            category=data.get("category", ""),
            metrics=BenchmarkMetrics.from_dict(data.get("metrics", {})),
            run_count=int(data.get("run_count", 1)),
            last_run=data.get("last_run", ""),
        )


@dataclass
class OverallStats:
    """
    Library-wide figures for one run.

    Latency and throughput are arithmetic means of the per-scenario values
    (a mean of p50s, not a p50 recomputed from pooled samples).
    """

    total_scenarios: int = 0
    total_runs: int = 0
    average_latency_p50: float = 0.0
    average_latency_p95: float = 0.0
    average_throughput: float = 0.0
    total_errors: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverallStats":
        return cls(
            total_scenarios=int(data.get("total_scenarios", 0)),
            total_runs=int(data.get("total_runs", 0)),
            average_latency_p50=float(data.get("average_latency_p50", 0.0)),
            average_latency_p95=float(data.get("average_latency_p95", 0.0)),
            average_throughput=float(data.get("average_throughput", 0.0)),
            total_errors=int(data.get("total_errors", 0)),
        )


@dataclass
class HistorySnapshot:
    """Overall stats of an earlier by-library aggregate."""

    run_id: str
    timestamp: str
    overall_stats: OverallStats

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistorySnapshot":
        return cls(
            run_id=data["run_id"],
            timestamp=data.get("timestamp", ""),
            overall_stats=OverallStats.from_dict(data.get("overall_stats", {})),
        )


@dataclass
class LibraryAggregate:
    library_id: str
    library_name: str
    library_version: str
    run_id: str
    scenarios: List[ScenarioSummary] = field(default_factory=list)
    overall_stats: OverallStats = field(default_factory=OverallStats)
    history: List[HistorySnapshot] = field(default_factory=list)
    first_seen: str = ""
    last_tested: str = ""
    total_runs: int = 1
    generated: str = ""

    def snapshot(self) -> HistorySnapshot:
        return HistorySnapshot(self.run_id, self.last_tested, self.overall_stats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "library_id": self.library_id,
            "library_name": self.library_name,
            "library_version": self.library_version,
            "run_id": self.run_id,
            "scenarios": [s.to_dict() for s in self.scenarios],
            "overall_stats": asdict(self.overall_stats),
            "history": [asdict(h) for h in self.history],
            "first_seen": self.first_seen,
            "last_tested": self.last_tested,
            "total_runs": self.total_runs,
            "generated": self.generated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryAggregate":
        return cls(
            library_id=data["library_id"],
            library_name=data.get("library_name", data["library_id"]),
            library_version=data.get("library_version", ""),
            run_id=data.get("run_id", ""),
            scenarios=[ScenarioSummary.from_dict(s) for s in data.get("scenarios", [])],
            overall_stats=OverallStats.from_dict(data.get("overall_stats", {})),
            history=[HistorySnapshot.from_dict(h) for h in data.get("history", [])],
            first_seen=data.get("first_seen", ""),
            last_tested=data.get("last_tested", ""),
            total_runs=int(data.get("total_runs", 1)),
            generated=data.get("generated", ""),
        )


# =============================================================================
# By-scenario
# =============================================================================

@dataclass
class LibraryResult:
    """One library's measurement of a scenario."""

    library_id: str
    library_name: str
    library_version: str
    metrics: BenchmarkMetrics
    timestamp: str
    run_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "library_id": self.library_id,
            "library_name": self.library_name,
            "library_version": self.library_version,
            "metrics": self.metrics.to_dict(),
            "timestamp": self.timestamp,
            "run_id": self.run_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryResult":
        return cls(
            library_id=data["library_id"],
            library_name=data.get("library_name", data["library_id"]),
            library_version=data.get("library_version", ""),
            metrics=BenchmarkMetrics.from_dict(data.get("metrics", {})),
            timestamp=data.get("timestamp", ""),
            run_id=data.get("run_id", ""),
        )


@dataclass
class ScenarioAggregate:
    scenario_id: str
    scenario_name: str
    category: str
    run_id: str
    library_results: List[LibraryResult] = field(default_factory=list)
    total_runs: int = 1
    generated: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "scenario_name": self.scenario_name,
            "category": self.category,
            "run_id": self.run_id,
            "library_results": [r.to_dict() for r in self.library_results],
            "total_runs": self.total_runs,
            "generated": self.generated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioAggregate":
        return cls(
            scenario_id=data["scenario_id"],
            scenario_name=data.get("scenario_name", data["scenario_id"]),
            category=data.get("category", ""),
            run_id=data.get("run_id", ""),
            library_results=[LibraryResult.from_dict(r) for r in data.get("library_results", [])],
            total_runs=int(data.get("total_runs", 1)),
            generated=data.get("generated", ""),
        )


# =============================================================================
# By-category
# =============================================================================

@dataclass
class CategoryLibraryStats:
    library_id: str
    library_name: str
    library_version: str
    scenario_count: int = 0
    average_latency_p50: float = 0.0
    average_latency_p95: float = 0.0
    average_throughput: float = 0.0
    total_runs: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryLibraryStats":
        return cls(
            library_id=data["library_id"],
            library_name=data.get("library_name", data["library_id"]),
            library_version=data.get("library_version", ""),
            scenario_count=int(data.get("scenario_count", 0)),
            average_latency_p50=float(data.get("average_latency_p50", 0.0)),
            average_latency_p95=float(data.get("average_latency_p95", 0.0)),
            average_throughput=float(data.get("average_throughput", 0.0)),
            total_runs=int(data.get("total_runs", 0)),
        )


@dataclass
class CategoryAggregate:
    category: str
    run_id: str
    scenarios: List[str] = field(default_factory=list)
    library_results: List[CategoryLibraryStats] = field(default_factory=list)
    generated: str = ""

    def for_library(self, library_id: str) -> Optional[CategoryLibraryStats]:
        return next((s for s in self.library_results if s.library_id == library_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "run_id": self.run_id,
            "scenarios": list(self.scenarios),
            "library_results": [asdict(s) for s in self.library_results],
            "generated": self.generated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryAggregate":
        return cls(
            category=data["category"],
            run_id=data.get("run_id", ""),
            scenarios=list(data.get("scenarios", [])),
            library_results=[
                CategoryLibraryStats.from_dict(s) for s in data.get("library_results", [])
            ],
            generated=data.get("generated", ""),
        )
