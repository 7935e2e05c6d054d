"""
UI projection endpoints: index and dashboard documents.
"""

from fastapi import APIRouter, Depends
from typing import Any, Dict

from api.dependencies import get_manager, read_document
from ormbench import StorageManager

router = APIRouter(prefix="/api/v1", tags=["dashboard"])


@router.get("/index", response_model=Dict[str, Any])
async def get_index(manager: StorageManager = Depends(get_manager)):
    return await read_document(manager, manager.layout.ui("latest", "index.json"), "Index")


@router.get("/dashboard", response_model=Dict[str, Any])
async def get_dashboard(manager: StorageManager = Depends(get_manager)):
    return await read_document(manager, manager.layout.ui("latest", "dashboard.json"), "Dashboard")
