from .models import (
    LibraryTimeline,
    RegressionAlert,
    ScenarioPoint,
    ScenarioTrend,
    Severity,
    TimelineDataPoint,
)
from .tracker import (
    HistoricalTracker,
    compute_regressions,
    compute_trends,
    regression_severity,
)

__all__ = [
    "HistoricalTracker",
    "compute_regressions",
    "compute_trends",
    "regression_severity",
    "LibraryTimeline",
    "RegressionAlert",
    "ScenarioPoint",
    "ScenarioTrend",
    "Severity",
    "TimelineDataPoint",
]
