"""
Scenario Registry

Scenarios are plain async callables over the ``LibraryAdapter`` verbs, so a
scenario never branches on which library it is driving. The default
catalogue covers single-row CRUD against the seeded ``users`` table
(ids 1..SEEDED_ROWS exist) plus a bulk insert.
"""
from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from ormbench.core.interfaces import LibraryAdapter
from ormbench.core.models import ScenarioInfo

ScenarioFn = Callable[[LibraryAdapter, random.Random], Awaitable[None]]

SEEDED_ROWS = 100000
PAGE_SIZE = 50
BULK_SIZE = 100


@dataclass
class Scenario:
    info: ScenarioInfo
    execute: ScenarioFn
    warmup_iterations: int = 500
    measurement_iterations: int = 10000

    @property
    def id(self) -> str:
        return self.info.id


def _new_user(rng: random.Random) -> Dict[str, Any]:
    tag = f"{int(time.time() * 1000)}_{rng.randrange(1000000)}"
    return {
        "email": f"test_{tag}@example.com",
        "username": f"test_{tag}",
        "first_name": "Test",
        "last_name": "User",
        "password_hash": "hash123",
        "is_active": True,
    }


# =============================================================================
# Default CRUD scenarios
# =============================================================================

async def select_by_id(adapter: LibraryAdapter, rng: random.Random) -> None:
    await adapter.select_by_id(rng.randint(1, SEEDED_ROWS))


async def select_by_email(adapter: LibraryAdapter, rng: random.Random) -> None:
    # Seeded emails look like "user{index}_{...}"
    await adapter.select_by_indexed_field(f"user{rng.randrange(SEEDED_ROWS)}_")


async def select_pagination(adapter: LibraryAdapter, rng: random.Random) -> None:
    await adapter.select_page(rng.randrange(SEEDED_ROWS - PAGE_SIZE), PAGE_SIZE)


async def insert_single(adapter: LibraryAdapter, rng: random.Random) -> None:
    await adapter.insert_one(_new_user(rng))


async def update_single(adapter: LibraryAdapter, rng: random.Random) -> None:
    await adapter.update_one(rng.randint(1, SEEDED_ROWS), {"first_name": "Updated"})


async def delete_single(adapter: LibraryAdapter, rng: random.Random) -> None:
    # Seeded rows stay intact: delete what was just inserted
    record_id = await adapter.insert_one(_new_user(rng))
    await adapter.delete_one(record_id)


async def bulk_insert(adapter: LibraryAdapter, rng: random.Random) -> None:
    await adapter.insert_many([_new_user(rng) for _ in range(BULK_SIZE)])


DEFAULT_SCENARIOS = (
    Scenario(ScenarioInfo("select_by_id", "SELECT by Primary Key", "crud",
                          "Fetch a single record by primary key"), select_by_id),
    Scenario(ScenarioInfo("select_by_email", "SELECT by Email (Indexed)", "crud",
                          "Fetch a single record by indexed email prefix"), select_by_email),
    Scenario(ScenarioInfo("select_pagination", "SELECT with Pagination", "crud",
                          f"Fetch {PAGE_SIZE} records with offset"), select_pagination),
    Scenario(ScenarioInfo("insert_single", "INSERT Single Record", "crud",
                          "Insert a single record"), insert_single),
    Scenario(ScenarioInfo("update_single", "UPDATE Single Record", "crud",
                          "Update a single existing record"), update_single),
    Scenario(ScenarioInfo("delete_single", "DELETE Single Record", "crud",
                          "Delete a single record (insert + delete)"), delete_single),
    Scenario(ScenarioInfo("bulk_insert", f"Bulk INSERT ({BULK_SIZE} records)", "crud",
                          f"Insert {BULK_SIZE} records in one operation"), bulk_insert,
             warmup_iterations=100, measurement_iterations=1000),
)


class ScenarioRegistry:
    """Scenarios by id, in registration order."""

    def __init__(self, scenarios: Optional[Iterable[Scenario]] = None):
        self._scenarios: Dict[str, Scenario] = {}
        for scenario in DEFAULT_SCENARIOS if scenarios is None else scenarios:
            self.register(scenario)

    def register(self, scenario: Scenario) -> None:
        self._scenarios[scenario.id] = scenario

    def get(self, scenario_id: str) -> Optional[Scenario]:
        return self._scenarios.get(scenario_id)

    def all(self) -> List[Scenario]:
        return list(self._scenarios.values())

    def __contains__(self, scenario_id: str) -> bool:
        return scenario_id in self._scenarios

    def __len__(self) -> int:
        return len(self._scenarios)

    def select(
        self,
        scenario_ids: Optional[Iterable[str]] = None,
        categories: Optional[Iterable[str]] = None,
    ) -> List[Scenario]:
        """
        Scenarios matching the given ids and categories, in registration
        order. Unknown ids raise ``KeyError``.
        """
        selected = self.all()
        if scenario_ids is not None:
            wanted = list(scenario_ids)
            unknown = [s for s in wanted if s not in self._scenarios]
            if unknown:
                raise KeyError(f"Unknown scenarios: {', '.join(unknown)}")
            selected = [s for s in selected if s.id in wanted]
        if categories is not None:
            cats = set(categories)
            selected = [s for s in selected if s.info.category in cats]
        return selected
