from .comparator import Comparator, compare_scenario, comparison_summary, overall_winner
from .models import (
    CategoryRecord,
    ComparisonSummary,
    LibraryComparison,
    MetricDelta,
    OverallWinner,
    RunComparison,
    ScenarioComparison,
    VersionComparison,
)

__all__ = [
    "Comparator",
    "compare_scenario",
    "comparison_summary",
    "overall_winner",
    "CategoryRecord",
    "ComparisonSummary",
    "LibraryComparison",
    "MetricDelta",
    "OverallWinner",
    "RunComparison",
    "ScenarioComparison",
    "VersionComparison",
]
