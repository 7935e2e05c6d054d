"""
Application Settings

Environment configuration for the results store and logging. Database
connection defaults live with the benchmark configuration
(``DatabaseSettings.from_env``).
"""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class Settings:
    """Application settings from environment."""

    results_dir: str = "benchmark-results"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            results_dir=os.getenv("ORMBENCH_RESULTS_DIR", "benchmark-results"),
            log_level=os.getenv("ORMBENCH_LOG_LEVEL", "INFO").upper(),
        )

    @property
    def results_path(self) -> Path:
        return Path(self.results_dir)
