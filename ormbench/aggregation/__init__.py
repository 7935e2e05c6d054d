from .aggregator import Aggregator, latest_per, overall_stats
from .models import (
    CategoryAggregate,
    CategoryLibraryStats,
    HistorySnapshot,
    LibraryAggregate,
    LibraryResult,
    OverallStats,
    ScenarioAggregate,
    ScenarioSummary,
)

__all__ = [
    "Aggregator",
    "latest_per",
    "overall_stats",
    "CategoryAggregate",
    "CategoryLibraryStats",
    "HistorySnapshot",
    "LibraryAggregate",
    "LibraryResult",
    "OverallStats",
    "ScenarioAggregate",
    "ScenarioSummary",
]
