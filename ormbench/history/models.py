"""
Timeline Data Models

One growing timeline document per library: a data point per run, trends per
scenario and the regression alerts raised by the two newest data points.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from ormbench.core.models import BenchmarkMetrics, EnvironmentSnapshot


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        return [Severity.CRITICAL, Severity.WARNING, Severity.MINOR].index(self)


@dataclass
class ScenarioPoint:
    """Metrics of one scenario within one timeline data point."""

    scenario_id: str
    scenario_name: str
    category: str
    metrics: BenchmarkMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "scenario_name": self.scenario_name,
            "category": self.category,
            "metrics": self.metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioPoint":
        return cls(
            scenario_id=data["scenario_id"],
            scenario_name=data.get("scenario_name", data["scenario_id"]),
            category=data.get("category", ""),
            metrics=BenchmarkMetrics.from_dict(data.get("metrics", {})),
        )


@dataclass
class TimelineDataPoint:
    run_id: str
    timestamp: str
    scenarios: List[ScenarioPoint] = field(default_factory=list)
    environment: EnvironmentSnapshot = field(default_factory=EnvironmentSnapshot)

    def scenario(self, scenario_id: str) -> Optional[ScenarioPoint]:
        return next((s for s in self.scenarios if s.scenario_id == scenario_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "timestamp": self.timestamp,
            "scenarios": [s.to_dict() for s in self.scenarios],
            "environment": self.environment.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineDataPoint":
        return cls(
            run_id=data["run_id"],
            timestamp=data.get("timestamp", ""),
            scenarios=[ScenarioPoint.from_dict(s) for s in data.get("scenarios", [])],
            environment=EnvironmentSnapshot.from_dict(data.get("environment")),
        )


@dataclass
class ScenarioTrend:
    """
    Direction of one scenario over the whole timeline.

    Averages use every data point; the change figures compare the first
    and the last data point only.
    """

    scenario_id: str
    scenario_name: str
    trend: str
    avg_latency_p50: float
    avg_latency_p95: float
    avg_throughput: float
    latency_change: float
    throughput_change: float
    data_points: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioTrend":
        return cls(
            scenario_id=data["scenario_id"],
            scenario_name=data.get("scenario_name", data["scenario_id"]),
            trend=data.get("trend", "stable"),
            avg_latency_p50=float(data.get("avg_latency_p50", 0.0)),
            avg_latency_p95=float(data.get("avg_latency_p95", 0.0)),
            avg_throughput=float(data.get("avg_throughput", 0.0)),
            latency_change=float(data.get("latency_change", 0.0)),
            throughput_change=float(data.get("throughput_change", 0.0)),
            data_points=int(data.get("data_points", 0)),
        )


@dataclass
class RegressionAlert:
    library_id: str
    scenario_id: str
    scenario_name: str
    metric: str  # "latency" | "throughput"
    severity: str
    change_percentage: float
    from_run: str
    to_run: str
    timestamp: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegressionAlert":
        return cls(
            library_id=data.get("library_id", ""),
            scenario_id=data["scenario_id"],
            scenario_name=data.get("scenario_name", data["scenario_id"]),
            metric=data["metric"],
            severity=data["severity"],
            change_percentage=float(data.get("change_percentage", 0.0)),
            from_run=data.get("from_run", ""),
            to_run=data.get("to_run", ""),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class LibraryTimeline:
    library_id: str
    library_name: str
    library_version: str
    data_points: List[TimelineDataPoint] = field(default_factory=list)
    trends: List[ScenarioTrend] = field(default_factory=list)
    regressions: List[RegressionAlert] = field(default_factory=list)
    generated: str = ""

    def trend_for(self, scenario_id: str) -> Optional[ScenarioTrend]:
        return next((t for t in self.trends if t.scenario_id == scenario_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "library_id": self.library_id,
            "library_name": self.library_name,
            "library_version": self.library_version,
            "generated": self.generated,
            "data_points": [dp.to_dict() for dp in self.data_points],
            "trends": [asdict(t) for t in self.trends],
            "regressions": [asdict(r) for r in self.regressions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryTimeline":
        return cls(
            library_id=data["library_id"],
            library_name=data.get("library_name", data["library_id"]),
            library_version=data.get("library_version", ""),
            data_points=[TimelineDataPoint.from_dict(dp) for dp in data.get("data_points", [])],
            trends=[ScenarioTrend.from_dict(t) for t in data.get("trends", [])],
            regressions=[RegressionAlert.from_dict(r) for r in data.get("regressions", [])],
            generated=data.get("generated", ""),
        )
