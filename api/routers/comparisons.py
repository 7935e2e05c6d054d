"""
Library comparison endpoints.
"""

from fastapi import APIRouter, Depends, Path
from typing import Any, Dict

from api.dependencies import ID_PATTERN, get_manager, read_document
from ormbench import StorageManager

router = APIRouter(prefix="/api/v1/comparisons", tags=["comparisons"])


@router.get("/latest", response_model=Dict[str, Any])
async def latest_comparison(manager: StorageManager = Depends(get_manager)):
    """All-library comparison of the most recently aggregated run."""
    path = manager.layout.ui("comparisons", "latest-all-libraries.json")
    return await read_document(manager, path, "Latest comparison")


@router.get("/{category}", response_model=Dict[str, Any])
async def category_comparison(
    category: str = Path(..., pattern=ID_PATTERN),
    manager: StorageManager = Depends(get_manager),
):
    path = manager.layout.ui("comparisons", f"{category}-only.json")
    return await read_document(manager, path, f"Comparison for category {category}")
