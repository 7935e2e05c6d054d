"""
Run ledger endpoints.
"""

from fastapi import APIRouter, Depends, Path
from typing import Any, Dict

from api.dependencies import ID_PATTERN, get_manager, read_document
from ormbench import StorageManager

router = APIRouter(prefix="/api/v1/runs", tags=["runs"])


@router.get("", response_model=Dict[str, Any])
async def list_runs(manager: StorageManager = Depends(get_manager)):
    """Runs index, newest first."""
    return await read_document(manager, manager.layout.runs_index, "Runs index")


@router.get("/{run_id}", response_model=Dict[str, Any])
async def get_run(
    run_id: str = Path(..., pattern=ID_PATTERN),
    manager: StorageManager = Depends(get_manager),
):
    return await read_document(manager, manager.layout.run_metadata(run_id), f"Run {run_id}")
