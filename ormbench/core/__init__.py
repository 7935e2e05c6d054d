"""
Core models, ports and helpers shared by every ormbench component.
"""
from .interfaces import IFileStore, LibraryAdapter
from .models import (
    CATEGORY_DISPLAY_NAMES,
    category_display_name,
    BenchmarkMetrics,
    BenchmarkResult,
    CpuStats,
    DatabaseConfig,
    DatabaseTarget,
    EnvironmentSnapshot,
    ErrorStats,
    GitInfo,
    LatencyStats,
    LibraryInfo,
    MemoryStats,
    RawMeasurement,
    ResultMetadata,
    RunConfiguration,
    RunMetadata,
    RunStatus,
    RunSummary,
    ScenarioInfo,
    TestConfiguration,
    TestedLibrarySummary,
    ThroughputStats,
    Trend,
    TriggerSource,
)
from .sweep import SweepOutcome, SweepReport
from .timeutil import Clock, format_run_id, isoformat, parse_iso, parse_run_id, utc_now

__all__ = [
    "CATEGORY_DISPLAY_NAMES",
    "category_display_name",
    "IFileStore",
    "LibraryAdapter",
    "BenchmarkMetrics",
    "BenchmarkResult",
    "CpuStats",
    "DatabaseConfig",
    "DatabaseTarget",
    "EnvironmentSnapshot",
    "ErrorStats",
    "GitInfo",
    "LatencyStats",
    "LibraryInfo",
    "MemoryStats",
    "RawMeasurement",
    "ResultMetadata",
    "RunConfiguration",
    "RunMetadata",
    "RunStatus",
    "RunSummary",
    "ScenarioInfo",
    "TestConfiguration",
    "TestedLibrarySummary",
    "ThroughputStats",
    "Trend",
    "TriggerSource",
    "SweepOutcome",
    "SweepReport",
    "Clock",
    "format_run_id",
    "isoformat",
    "parse_iso",
    "parse_run_id",
    "utc_now",
]
