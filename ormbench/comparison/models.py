"""
Comparison Data Models

Library-vs-library comparison for one run, version-vs-version comparison for
one library across runs, and run-vs-run deltas.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from ormbench.aggregation.models import LibraryResult
from ormbench.core.models import BenchmarkMetrics, LibraryInfo


# =============================================================================
# Library comparison
# =============================================================================

@dataclass
class MetricDelta:
    """Difference between the winner and the runner-up."""

    absolute: float
    percentage: float
    better: str  # library id on the favourable side

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetricDelta":
        return cls(
            absolute=float(data.get("absolute", 0.0)),
            percentage=float(data.get("percentage", 0.0)),
            better=data.get("better", ""),
        )


@dataclass
class ScenarioDeltas:
    latency_p50: MetricDelta
    latency_p95: MetricDelta
    latency_p99: MetricDelta
    throughput: MetricDelta

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioDeltas":
        return cls(**{k: MetricDelta.from_dict(data.get(k, {})) for k in cls.__dataclass_fields__})


@dataclass
class ScenarioComparison:
    scenario_id: str
    scenario_name: str
    category: str
    winner: str
    winner_reason: str
    runner_up: str
    results: List[LibraryResult]
    deltas: ScenarioDeltas

    def result_for(self, library_id: str) -> Optional[LibraryResult]:
        return next((r for r in self.results if r.library_id == library_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "scenario_name": self.scenario_name,
            "category": self.category,
            "winner": self.winner,
            "winner_reason": self.winner_reason,
            "runner_up": self.runner_up,
            "results": [r.to_dict() for r in self.results],
            "deltas": asdict(self.deltas),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioComparison":
        return cls(
            scenario_id=data["scenario_id"],
            scenario_name=data.get("scenario_name", data["scenario_id"]),
            category=data.get("category", ""),
            winner=data["winner"],
            winner_reason=data.get("winner_reason", "latency_p50"),
            runner_up=data.get("runner_up", ""),
            results=[LibraryResult.from_dict(r) for r in data.get("results", [])],
            deltas=ScenarioDeltas.from_dict(data.get("deltas", {})),
        )


@dataclass
class CategoryRecord:
    category: str
    wins: int = 0
    losses: int = 0
    ties: int = 0


@dataclass
class OverallWinner:
    library_id: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    categories: List[CategoryRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverallWinner":
        return cls(
            library_id=data["library_id"],
            wins=int(data.get("wins", 0)),
            losses=int(data.get("losses", 0)),
            ties=int(data.get("ties", 0)),
            categories=[CategoryRecord(**c) for c in data.get("categories", [])],
        )


@dataclass
class ComparisonSummary:
    total_scenarios: int = 0
    categories_compared: List[str] = field(default_factory=list)
    significant_differences: int = 0
    average_performance_diff: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComparisonSummary":
        return cls(
            total_scenarios=int(data.get("total_scenarios", 0)),
            categories_compared=list(data.get("categories_compared", [])),
            significant_differences=int(data.get("significant_differences", 0)),
            average_performance_diff=float(data.get("average_performance_diff", 0.0)),
        )


@dataclass
class LibraryComparison:
    comparison_id: str
    run_id: str
    libraries: List[LibraryInfo]
    scenarios: List[ScenarioComparison]
    overall_winner: Optional[OverallWinner]
    summary: ComparisonSummary
    generated: str = ""

    def scenario(self, scenario_id: str) -> Optional[ScenarioComparison]:
        return next((s for s in self.scenarios if s.scenario_id == scenario_id), None)

    def for_category(self, category: str) -> "LibraryComparison":
        """Copy restricted to one category's scenarios."""
        scenarios = [s for s in self.scenarios if s.category == category]
        return LibraryComparison(
            comparison_id=f"{self.comparison_id}-{category}",
            run_id=self.run_id,
            libraries=self.libraries,
            scenarios=scenarios,
            overall_winner=self.overall_winner,
            summary=self.summary,
            generated=self.generated,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "comparison_id": self.comparison_id,
            "run_id": self.run_id,
            "generated": self.generated,
            "libraries": [lib.to_dict() for lib in self.libraries],
            "scenarios": [s.to_dict() for s in self.scenarios],
            "overall_winner": asdict(self.overall_winner) if self.overall_winner else None,
            "summary": asdict(self.summary),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryComparison":
        winner = data.get("overall_winner")
        return cls(
            comparison_id=data.get("comparison_id", ""),
            run_id=data["run_id"],
            libraries=[LibraryInfo.from_dict(lib) for lib in data.get("libraries", [])],
            scenarios=[ScenarioComparison.from_dict(s) for s in data.get("scenarios", [])],
            overall_winner=OverallWinner.from_dict(winner) if winner else None,
            summary=ComparisonSummary.from_dict(data.get("summary", {})),
            generated=data.get("generated", ""),
        )


# =============================================================================
# Version comparison
# =============================================================================

@dataclass
class VersionMetrics:
    version: str
    run_id: str
    metrics: BenchmarkMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "run_id": self.run_id, "metrics": self.metrics.to_dict()}


@dataclass
class VersionScenarioComparison:
    scenario_id: str
    scenario_name: str
    category: str
    version_results: List[VersionMetrics]
    trend: str
    change_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "scenario_name": self.scenario_name,
            "category": self.category,
            "version_results": [v.to_dict() for v in self.version_results],
            "trend": self.trend,
            "change_percentage": self.change_percentage,
        }


@dataclass
class SignificantChange:
    scenario_id: str
    scenario_name: str
    type: str  # "improvement" | "regression"
    metric: str
    change_percentage: float
    from_version: str
    to_version: str


@dataclass
class VersionComparison:
    comparison_id: str
    library_name: str
    versions: List[str]
    scenarios: List[VersionScenarioComparison]
    improvement_count: int = 0
    regression_count: int = 0
    no_change_count: int = 0
    significant_changes: List[SignificantChange] = field(default_factory=list)
    generated: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "comparison_id": self.comparison_id,
            "library_name": self.library_name,
            "versions": list(self.versions),
            "generated": self.generated,
            "scenarios": [s.to_dict() for s in self.scenarios],
            "summary": {
                "improvement_count": self.improvement_count,
                "regression_count": self.regression_count,
                "no_change_count": self.no_change_count,
                "significant_changes": [asdict(c) for c in self.significant_changes],
            },
        }


# =============================================================================
# Run comparison
# =============================================================================

@dataclass
class ScenarioRunDelta:
    scenario_id: str
    scenario_name: str
    category: str
    latency_p50_before: float
    latency_p50_after: float
    latency_change_pct: float
    throughput_before: float
    throughput_after: float
    throughput_change_pct: float
    trend: str


@dataclass
class LibraryRunDelta:
    library_id: str
    scenarios: List[ScenarioRunDelta] = field(default_factory=list)


@dataclass
class RunComparison:
    run_a: str
    run_b: str
    libraries: List[LibraryRunDelta]
    improved: int = 0
    degraded: int = 0
    stable: int = 0
    generated: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_a": self.run_a,
            "run_b": self.run_b,
            "generated": self.generated,
            "libraries": [asdict(lib) for lib in self.libraries],
            "summary": {"improved": self.improved, "degraded": self.degraded, "stable": self.stable},
        }
