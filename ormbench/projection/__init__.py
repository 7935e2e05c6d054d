from .builder import ProjectionBuilder, format_run_label
from .models import (
    CategoryListItem,
    CategoryWinner,
    LibraryListItem,
    PerformanceChange,
    RunListItem,
    ScenarioListItem,
    TopPerformer,
)

__all__ = [
    "ProjectionBuilder",
    "format_run_label",
    "CategoryListItem",
    "CategoryWinner",
    "LibraryListItem",
    "PerformanceChange",
    "RunListItem",
    "ScenarioListItem",
    "TopPerformer",
]
