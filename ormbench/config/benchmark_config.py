"""
Benchmark Configuration

Which libraries and scenarios a run covers and with how many iterations.
Loaded from YAML::

    database:
      host: localhost
      port: 5432
      database: benchmark
      user: benchmark
      max_connections: 20
    memory_monitoring_interval_ms: 100
    libraries:
      - {id: libA-v1.0.0, name: libA, version: 1.0.0}
    scenarios:
      - {id: select_by_id, name: SELECT by Primary Key, category: crud,
         warmup_iterations: 500, measurement_iterations: 10000}

``validate()`` checks a configuration before anything is run and returns
every problem found instead of stopping at the first.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ormbench.core.models import CATEGORY_DISPLAY_NAMES, DatabaseTarget, TestConfiguration

VALID_CATEGORIES = tuple(CATEGORY_DISPLAY_NAMES)


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class DatabaseSettings:
    host: str = "localhost"
    port: int = 5432
    database: str = "benchmark"
    user: str = "benchmark"
    password: str = "benchmark"
    max_connections: int = 20

    @classmethod
    def from_env(cls) -> "DatabaseSettings":
        """Connection defaults from the ``DB_*`` environment variables."""
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "benchmark"),
            user=os.getenv("DB_USER", "benchmark"),
            password=os.getenv("DB_PASSWORD", "benchmark"),
            max_connections=int(os.getenv("DB_POOL_SIZE", "20")),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: Optional["DatabaseSettings"] = None) -> "DatabaseSettings":
        base = defaults or cls()
        return cls(
            host=data.get("host", base.host),
            port=int(data.get("port", base.port)),
            database=data.get("database", base.database),
            user=data.get("user", base.user),
            password=data.get("password", base.password),
            max_connections=int(data.get("max_connections", base.max_connections)),
        )

    @property
    def target(self) -> DatabaseTarget:
        return DatabaseTarget(host=self.host, port=self.port, database=self.database)


@dataclass
class LibraryConfig:
    id: str
    name: str
    version: str
    enabled: bool = True
    connection_pool_size: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryConfig":
        pool = data.get("connection_pool_size")
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            version=str(data.get("version", "")),
            enabled=bool(data.get("enabled", True)),
            connection_pool_size=int(pool) if pool is not None else None,
        )


@dataclass
class ScenarioConfig:
    id: str
    name: str
    category: str
    enabled: bool = True
    warmup_iterations: int = 500
    measurement_iterations: int = 10000
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioConfig":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            category=str(data.get("category", "")),
            enabled=bool(data.get("enabled", True)),
            warmup_iterations=int(data.get("warmup_iterations", 500)),
            measurement_iterations=int(data.get("measurement_iterations", 10000)),
            description=data.get("description", ""),
        )


@dataclass
class BenchmarkConfig:
    libraries: List[LibraryConfig] = field(default_factory=list)
    scenarios: List[ScenarioConfig] = field(default_factory=list)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    memory_monitoring_interval_ms: int = 100
    include_raw_data: bool = False

    @classmethod
    def from_yaml(cls, data: Dict[str, Any]) -> "BenchmarkConfig":
        data = data.get("benchmark", data) or {}
        return cls(
            libraries=[LibraryConfig.from_dict(d) for d in data.get("libraries", [])],
            scenarios=[ScenarioConfig.from_dict(d) for d in data.get("scenarios", [])],
            database=DatabaseSettings.from_dict(data.get("database") or {}, DatabaseSettings.from_env()),
            memory_monitoring_interval_ms=int(data.get("memory_monitoring_interval_ms", 100)),
            include_raw_data=bool(data.get("include_raw_data", False)),
        )

    @property
    def enabled_libraries(self) -> List[LibraryConfig]:
        return [lib for lib in self.libraries if lib.enabled]

    @property
    def enabled_scenarios(self) -> List[ScenarioConfig]:
        return [s for s in self.scenarios if s.enabled]

    def test_configuration(
        self, scenario: ScenarioConfig, library: Optional[LibraryConfig] = None
    ) -> TestConfiguration:
        """Effective settings one measurement is taken with."""
        pool = self.database.max_connections
        if library is not None and library.connection_pool_size is not None:
            pool = library.connection_pool_size
        return TestConfiguration(
            warmup_iterations=scenario.warmup_iterations,
            measurement_iterations=scenario.measurement_iterations,
            memory_monitoring_interval_ms=self.memory_monitoring_interval_ms,
            connection_pool_size=pool,
            database=self.database.target,
        )

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self) -> ValidationResult:
        errors: List[str] = []
        warnings: List[str] = []
        self._validate_database(errors, warnings)
        self._validate_libraries(errors, warnings)
        self._validate_scenarios(errors, warnings)
        if self.memory_monitoring_interval_ms < 1:
            errors.append("Metrics: memory_monitoring_interval_ms must be at least 1")
        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def _validate_database(self, errors: List[str], warnings: List[str]) -> None:
        db = self.database
        if not db.host:
            errors.append("Database: host is required")
        if not 1 <= db.port <= 65535:
            errors.append("Database: port must be between 1 and 65535")
        if not db.database:
            errors.append("Database: database name is required")
        if not db.user:
            errors.append("Database: user is required")
        if not db.password:
            warnings.append("Database: password is empty (may be intentional for local dev)")
        if db.max_connections < 5:
            warnings.append("Database: max_connections is very low, may cause connection issues")

    def _validate_libraries(self, errors: List[str], warnings: List[str]) -> None:
        if not self.libraries:
            errors.append("Libraries: at least one library must be configured")
            return
        if not self.enabled_libraries:
            errors.append("Libraries: at least one library must be enabled")

        for lib in self.libraries:
            prefix = f"Library[{lib.id}]"
            if not lib.id:
                errors.append(f"{prefix}: id is required")
            if not lib.name:
                errors.append(f"{prefix}: name is required")
            if not lib.version:
                errors.append(f"{prefix}: version is required")
            if lib.connection_pool_size is not None:
                if lib.connection_pool_size < 1:
                    errors.append(f"{prefix}: connection_pool_size must be at least 1")
                elif lib.connection_pool_size > 100:
                    warnings.append(
                        f"{prefix}: connection_pool_size is very high ({lib.connection_pool_size})"
                    )

        duplicates = _duplicates(lib.id for lib in self.libraries)
        if duplicates:
            errors.append(f"Libraries: duplicate ids found: {', '.join(duplicates)}")

    def _validate_scenarios(self, errors: List[str], warnings: List[str]) -> None:
        if not self.scenarios:
            errors.append("Scenarios: at least one scenario must be configured")
            return
        if not self.enabled_scenarios:
            warnings.append("Scenarios: no scenarios are enabled")

        for s in self.scenarios:
            prefix = f"Scenario[{s.id}]"
            if not s.id:
                errors.append(f"{prefix}: id is required")
            if not s.name:
                errors.append(f"{prefix}: name is required")
            if s.category not in VALID_CATEGORIES:
                errors.append(
                    f"{prefix}: invalid category '{s.category}'. "
                    f"Must be one of: {', '.join(VALID_CATEGORIES)}"
                )
            if s.warmup_iterations < 0:
                errors.append(f"{prefix}: warmup_iterations cannot be negative")
            elif s.warmup_iterations == 0:
                warnings.append(f"{prefix}: no warmup iterations, results may include cold start overhead")
            elif s.warmup_iterations > 10000:
                warnings.append(f"{prefix}: very high warmup iterations ({s.warmup_iterations})")
            if s.measurement_iterations < 1:
                errors.append(f"{prefix}: measurement_iterations must be at least 1")
            elif s.measurement_iterations < 100:
                warnings.append(
                    f"{prefix}: low measurement iterations ({s.measurement_iterations}), "
                    "results may not be statistically significant"
                )
            elif s.measurement_iterations > 100000:
                warnings.append(f"{prefix}: very high measurement iterations ({s.measurement_iterations})")

        duplicates = _duplicates(s.id for s in self.scenarios)
        if duplicates:
            errors.append(f"Scenarios: duplicate ids found: {', '.join(duplicates)}")


def _duplicates(ids) -> List[str]:
    seen, dupes = set(), []
    for i in ids:
        if i in seen and i not in dupes:
            dupes.append(i)
        seen.add(i)
    return dupes


def load_config(path: Union[str, Path]) -> BenchmarkConfig:
    """Load benchmark configuration from a YAML file."""
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    return BenchmarkConfig.from_yaml(data or {})
