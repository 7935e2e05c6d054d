"""
Benchmark Data Models

Dataclasses for library/scenario identity, the metrics bundle produced by a
measurement, run metadata, and the stored measurement document.

Every keyed collection is serialised as an ordered list of entries that carry
their own key (``[{"type": ..., "count": ...}]``), never as a JSON object.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# Enumerations
# =============================================================================

class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


class TriggerSource(str, Enum):
    MANUAL = "manual"
    CI = "ci"
    SCHEDULED = "scheduled"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "TriggerSource":
        try:
            return cls(value or "unknown")
        except ValueError:
            return cls.UNKNOWN


class Trend(str, Enum):
    IMPROVING = "improving"
    DEGRADING = "degrading"
    STABLE = "stable"


# =============================================================================
# Identity
# =============================================================================

@dataclass(frozen=True)
class LibraryInfo:
    """Identity of a database-access library under test."""

    id: str
    name: str
    version: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "version": self.version}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryInfo":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            version=data.get("version", ""),
        )


CATEGORY_DISPLAY_NAMES = {
    "crud": "CRUD Operations",
    "relations": "Relations & Joins",
    "aggregations": "Aggregations",
    "filtering": "Filtering & Sorting",
    "transactions": "Transactions",
    "mixed": "Mixed Operations",
}


def category_display_name(category: str) -> str:
    return CATEGORY_DISPLAY_NAMES.get(category, category[:1].upper() + category[1:])


@dataclass(frozen=True)
class ScenarioInfo:
    """A catalog entry describing one unit of benchmark work."""

    id: str
    name: str
    category: str
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioInfo":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            category=data.get("category", "uncategorized"),
            description=data.get("description", ""),
        )


# =============================================================================
# Metrics bundle
# =============================================================================

@dataclass
class LatencyStats:
    """Latency distribution in milliseconds."""

    mean: float = 0.0
    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    p999: float = 0.0
    min: float = 0.0
    max: float = 0.0
    stddev: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LatencyStats":
        return cls(**{k: float(data.get(k, 0.0)) for k in cls.__dataclass_fields__})


@dataclass
class ThroughputStats:
    rps: float = 0.0
    total_requests: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThroughputStats":
        return cls(
            rps=float(data.get("rps", 0.0)),
            total_requests=int(data.get("total_requests", 0)),
        )


@dataclass
class MemoryStats:
    """Memory samples in bytes, one value per monitoring tick."""

    heap_used: List[float] = field(default_factory=list)
    heap_total: List[float] = field(default_factory=list)
    rss: List[float] = field(default_factory=list)
    external: List[float] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryStats":
        return cls(
            heap_used=list(data.get("heap_used", [])),
            heap_total=list(data.get("heap_total", [])),
            rss=list(data.get("rss", [])),
            external=list(data.get("external", [])),
        )


@dataclass
class CpuStats:
    usage: List[float] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CpuStats":
        return cls(usage=list(data.get("usage", [])))


@dataclass
class ErrorStats:
    """Error count plus a histogram of error kinds (insertion ordered)."""

    count: int = 0
    types: Dict[str, int] = field(default_factory=dict)

    def record(self, kind: str) -> None:
        self.types[kind] = self.types.get(kind, 0) + 1
        self.count += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "types": [{"type": k, "count": v} for k, v in self.types.items()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorStats":
        types: Dict[str, int] = {}
        for entry in data.get("types", []):
            types[entry["type"]] = int(entry["count"])
        return cls(count=int(data.get("count", 0)), types=types)


@dataclass
class BenchmarkMetrics:
    """Finished metrics bundle for one scenario against one library."""

    latency: LatencyStats = field(default_factory=LatencyStats)
    throughput: ThroughputStats = field(default_factory=ThroughputStats)
    memory: MemoryStats = field(default_factory=MemoryStats)
    cpu: CpuStats = field(default_factory=CpuStats)
    errors: ErrorStats = field(default_factory=ErrorStats)

    @property
    def succeeded(self) -> bool:
        return self.errors.count == 0

    @property
    def measured(self) -> bool:
        """At least one iteration completed; only such bundles can be ranked."""
        return self.throughput.total_requests > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latency": asdict(self.latency),
            "throughput": asdict(self.throughput),
            "memory": asdict(self.memory),
            "cpu": asdict(self.cpu),
            "errors": self.errors.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchmarkMetrics":
        return cls(
            latency=LatencyStats.from_dict(data.get("latency", {})),
            throughput=ThroughputStats.from_dict(data.get("throughput", {})),
            memory=MemoryStats.from_dict(data.get("memory", {})),
            cpu=CpuStats.from_dict(data.get("cpu", {})),
            errors=ErrorStats.from_dict(data.get("errors", {})),
        )


# =============================================================================
# Configuration & environment
# =============================================================================

@dataclass
class DatabaseTarget:
    host: str = "localhost"
    port: int = 5432
    database: str = "benchmark"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatabaseTarget":
        return cls(
            host=data.get("host", "localhost"),
            port=int(data.get("port", 5432)),
            database=data.get("database", "benchmark"),
        )


@dataclass
class TestConfiguration:
    """Effective configuration a measurement was taken with."""

    __test__ = False  # not a pytest test class

    warmup_iterations: int = 500
    measurement_iterations: int = 10000
    memory_monitoring_interval_ms: int = 100
    connection_pool_size: int = 20
    database: DatabaseTarget = field(default_factory=DatabaseTarget)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestConfiguration":
        return cls(
            warmup_iterations=int(data.get("warmup_iterations", 500)),
            measurement_iterations=int(data.get("measurement_iterations", 10000)),
            memory_monitoring_interval_ms=int(data.get("memory_monitoring_interval_ms", 100)),
            connection_pool_size=int(data.get("connection_pool_size", 20)),
            database=DatabaseTarget.from_dict(data.get("database", {})),
        )


@dataclass
class EnvironmentSnapshot:
    """Host facts captured when a run starts or a measurement is saved."""

    python_version: str = ""
    platform: str = ""
    arch: str = ""
    cpu_model: str = "Unknown"
    cpu_cores: int = 0
    total_memory_mb: int = 0
    connection_pool_size: int = 20
    timestamp: str = ""
    postgres_version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EnvironmentSnapshot":
        data = data or {}
        return cls(
            python_version=data.get("python_version", ""),
            platform=data.get("platform", ""),
            arch=data.get("arch", ""),
            cpu_model=data.get("cpu_model", "Unknown"),
            cpu_cores=int(data.get("cpu_cores", 0)),
            total_memory_mb=int(data.get("total_memory_mb", 0)),
            connection_pool_size=int(data.get("connection_pool_size", 20)),
            timestamp=data.get("timestamp", ""),
            postgres_version=data.get("postgres_version"),
        )


@dataclass
class GitInfo:
    branch: str
    commit: str
    is_dirty: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["GitInfo"]:
        if not data:
            return None
        return cls(
            branch=data.get("branch", ""),
            commit=data.get("commit", ""),
            is_dirty=bool(data.get("is_dirty", False)),
        )


# =============================================================================
# Run metadata
# =============================================================================

@dataclass
class DatabaseConfig:
    host: str = "localhost"
    port: int = 5432
    database: str = "benchmark"
    pool_size: int = 20

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatabaseConfig":
        return cls(
            host=data.get("host", "localhost"),
            port=int(data.get("port", 5432)),
            database=data.get("database", "benchmark"),
            pool_size=int(data.get("pool_size", 20)),
        )


@dataclass
class RunConfiguration:
    """Configuration requested for a whole run."""

    warmup_iterations: int = 0
    test_iterations: int = 0
    memory_monitoring_interval_ms: int = 100
    enabled_categories: List[str] = field(default_factory=list)
    enabled_scenarios: List[str] = field(default_factory=list)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @classmethod
    def from_test_configuration(
        cls,
        config: TestConfiguration,
        categories: List[str],
        scenario_ids: List[str],
    ) -> "RunConfiguration":
        return cls(
            warmup_iterations=config.warmup_iterations,
            test_iterations=config.measurement_iterations,
            memory_monitoring_interval_ms=config.memory_monitoring_interval_ms,
            enabled_categories=list(categories),
            enabled_scenarios=list(scenario_ids),
            database=DatabaseConfig(
                host=config.database.host,
                port=config.database.port,
                database=config.database.database,
                pool_size=config.connection_pool_size,
            ),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunConfiguration":
        return cls(
            warmup_iterations=int(data.get("warmup_iterations", 0)),
            test_iterations=int(data.get("test_iterations", 0)),
            memory_monitoring_interval_ms=int(data.get("memory_monitoring_interval_ms", 100)),
            enabled_categories=list(data.get("enabled_categories", [])),
            enabled_scenarios=list(data.get("enabled_scenarios", [])),
            database=DatabaseConfig.from_dict(data.get("database", {})),
        )


@dataclass
class TestedLibrarySummary:
    """Per-library counters kept inside the run metadata."""

    __test__ = False

    library_id: str
    name: str
    version: str
    scenarios_run: int = 0
    scenarios_succeeded: int = 0
    scenarios_failed: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestedLibrarySummary":
        return cls(
            library_id=data["library_id"],
            name=data.get("name", data["library_id"]),
            version=data.get("version", ""),
            scenarios_run=int(data.get("scenarios_run", 0)),
            scenarios_succeeded=int(data.get("scenarios_succeeded", 0)),
            scenarios_failed=int(data.get("scenarios_failed", 0)),
        )


@dataclass
class RunSummary:
    total_scenarios: int = 0
    total_measurements: int = 0
    successful_tests: int = 0
    failed_tests: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunSummary":
        return cls(**{k: int(data.get(k, 0)) for k in cls.__dataclass_fields__})


@dataclass
class RunMetadata:
    """Single source of truth for what happened during one run."""

    run_id: str
    timestamp: str
    start_time: str
    status: RunStatus = RunStatus.RUNNING
    triggered_by: TriggerSource = TriggerSource.MANUAL
    end_time: Optional[str] = None
    duration_ms: float = 0.0
    environment: EnvironmentSnapshot = field(default_factory=EnvironmentSnapshot)
    configuration: RunConfiguration = field(default_factory=RunConfiguration)
    tested_libraries: List[TestedLibrarySummary] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)
    git_info: Optional[GitInfo] = None
    notes: Optional[str] = None

    @property
    def library_ids(self) -> List[str]:
        return [lib.library_id for lib in self.tested_libraries]

    def library_summary(self, library_id: str) -> Optional[TestedLibrarySummary]:
        for lib in self.tested_libraries:
            if lib.library_id == library_id:
                return lib
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "timestamp": self.timestamp,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "triggered_by": self.triggered_by.value,
            "environment": self.environment.to_dict(),
            "configuration": asdict(self.configuration),
            "tested_libraries": [asdict(lib) for lib in self.tested_libraries],
            "summary": asdict(self.summary),
            "git_info": asdict(self.git_info) if self.git_info else None,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunMetadata":
        return cls(
            run_id=data["run_id"],
            timestamp=data.get("timestamp", ""),
            start_time=data.get("start_time", data.get("timestamp", "")),
            end_time=data.get("end_time"),
            duration_ms=float(data.get("duration_ms", 0.0)),
            status=RunStatus(data.get("status", "running")),
            triggered_by=TriggerSource.from_string(data.get("triggered_by")),
            environment=EnvironmentSnapshot.from_dict(data.get("environment")),
            configuration=RunConfiguration.from_dict(data.get("configuration", {})),
            tested_libraries=[
                TestedLibrarySummary.from_dict(d) for d in data.get("tested_libraries", [])
            ],
            summary=RunSummary.from_dict(data.get("summary", {})),
            git_info=GitInfo.from_dict(data.get("git_info")),
            notes=data.get("notes"),
        )


# =============================================================================
# Stored measurement
# =============================================================================

@dataclass
class RawMeasurement:
    """One measured iteration; persisted only on request."""

    iteration: int
    timestamp: float
    latency_ms: float
    memory_mb: Optional[float] = None
    cpu_percent: Optional[float] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawMeasurement":
        return cls(
            iteration=int(data["iteration"]),
            timestamp=float(data.get("timestamp", 0.0)),
            latency_ms=float(data.get("latency_ms", 0.0)),
            memory_mb=data.get("memory_mb"),
            cpu_percent=data.get("cpu_percent"),
            error=data.get("error"),
        )


@dataclass
class ResultMetadata:
    run_id: str
    timestamp: str
    library_id: str
    library_name: str
    library_version: str
    scenario_id: str
    scenario_name: str
    category: str
    environment: EnvironmentSnapshot = field(default_factory=EnvironmentSnapshot)
    duration_ms: float = 0.0
    success: bool = True
    error: Optional[str] = None

    @property
    def library(self) -> LibraryInfo:
        return LibraryInfo(self.library_id, self.library_name, self.library_version)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["environment"] = self.environment.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResultMetadata":
        return cls(
            run_id=data["run_id"],
            timestamp=data.get("timestamp", ""),
            library_id=data["library_id"],
            library_name=data.get("library_name", data["library_id"]),
            library_version=data.get("library_version", ""),
            scenario_id=data["scenario_id"],
            scenario_name=data.get("scenario_name", data["scenario_id"]),
            category=data.get("category", "uncategorized"),
            environment=EnvironmentSnapshot.from_dict(data.get("environment")),
            duration_ms=float(data.get("duration_ms", 0.0)),
            success=bool(data.get("success", True)),
            error=data.get("error"),
        )


@dataclass
class BenchmarkResult:
    """One immutable measurement for (run, library, category, scenario)."""

    metadata: ResultMetadata
    metrics: BenchmarkMetrics
    configuration: TestConfiguration = field(default_factory=TestConfiguration)
    raw_data: Optional[List[RawMeasurement]] = None

    @property
    def key(self) -> tuple:
        m = self.metadata
        return (m.run_id, m.library_id, m.category, m.scenario_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "metrics": self.metrics.to_dict(),
            "configuration": self.configuration.to_dict(),
            "raw_data": [asdict(r) for r in self.raw_data] if self.raw_data is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchmarkResult":
        raw = data.get("raw_data")
        return cls(
            metadata=ResultMetadata.from_dict(data["metadata"]),
            metrics=BenchmarkMetrics.from_dict(data.get("metrics", {})),
            configuration=TestConfiguration.from_dict(data.get("configuration", {})),
            raw_data=[RawMeasurement.from_dict(r) for r in raw] if raw is not None else None,
        )
