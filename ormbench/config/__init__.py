"""
Configuration Package

Environment settings and benchmark configuration.
"""

from .benchmark_config import (
    BenchmarkConfig,
    DatabaseSettings,
    LibraryConfig,
    ScenarioConfig,
    ValidationResult,
    load_config,
)
from .settings import Settings

__all__ = [
    "BenchmarkConfig",
    "DatabaseSettings",
    "LibraryConfig",
    "ScenarioConfig",
    "Settings",
    "ValidationResult",
    "load_config",
]
