"""
UI Projection Models

Small list items and dashboard entries the UI reads.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass
class RunListItem:
    run_id: str
    timestamp: str
    label: str
    libraries: List[str]
    categories: List[str]
    scenario_count: int
    status: str


@dataclass
class LibraryListItem:
    id: str
    name: str
    version: str
    first_seen: str
    last_tested: str
    total_runs: int


@dataclass
class CategoryListItem:
    id: str
    name: str
    scenario_count: int = 0


@dataclass
class ScenarioListItem:
    id: str
    name: str
    category: str


@dataclass
class TopPerformer:
    library_id: str = ""
    library_name: str = ""
    value: float = 0.0


@dataclass
class CategoryWinner:
    category: str
    name: str
    library_id: str
    average_latency_p50: float


@dataclass
class PerformanceChange:
    library_id: str
    library_name: str
    scenario_id: str
    scenario_name: str
    metric: str
    change: float
    trend: str
    data_points: int = 0
