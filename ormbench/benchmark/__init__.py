"""
Benchmark Package

Measurement side: scenario catalogue, metrics collection and the runner
that feeds the results store.
"""

from .collector import MetricsCollector, percentile, population_stddev
from .runner import BenchmarkRunner
from .scenarios import DEFAULT_SCENARIOS, Scenario, ScenarioRegistry

__all__ = [
    "BenchmarkRunner",
    "DEFAULT_SCENARIOS",
    "MetricsCollector",
    "Scenario",
    "ScenarioRegistry",
    "percentile",
    "population_stddev",
]
