"""
Aggregate endpoints: per library, scenario and category, plus library
timelines.
"""

from fastapi import APIRouter, Depends, Path
from typing import Any, Dict

from api.dependencies import ID_PATTERN, get_manager, read_document
from ormbench import StorageManager

router = APIRouter(prefix="/api/v1", tags=["aggregates"])


@router.get("/libraries/{library_id}", response_model=Dict[str, Any])
async def get_library(
    library_id: str = Path(..., pattern=ID_PATTERN),
    manager: StorageManager = Depends(get_manager),
):
    return await read_document(manager, manager.layout.by_library(library_id), f"Library {library_id}")


@router.get("/libraries/{library_id}/timeline", response_model=Dict[str, Any])
async def get_library_timeline(
    library_id: str = Path(..., pattern=ID_PATTERN),
    manager: StorageManager = Depends(get_manager),
):
    return await read_document(manager, manager.layout.timeline(library_id), f"Timeline for {library_id}")


@router.get("/scenarios/{scenario_id}", response_model=Dict[str, Any])
async def get_scenario(
    scenario_id: str = Path(..., pattern=ID_PATTERN),
    manager: StorageManager = Depends(get_manager),
):
    return await read_document(manager, manager.layout.by_scenario(scenario_id), f"Scenario {scenario_id}")


@router.get("/categories/{category}", response_model=Dict[str, Any])
async def get_category(
    category: str = Path(..., pattern=ID_PATTERN),
    manager: StorageManager = Depends(get_manager),
):
    return await read_document(manager, manager.layout.by_category(category), f"Category {category}")
