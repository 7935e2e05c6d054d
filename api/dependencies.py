"""
FastAPI dependency injection for API routes.

Provides:
  - ``get_settings``: environment settings, read once per process
  - ``get_manager``: the ``StorageManager`` over the configured results dir
  - ``read_document``: load a stored JSON document or answer 404
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from fastapi import Depends, HTTPException

from ormbench import StorageManager
from ormbench.config import Settings

logger = logging.getLogger(__name__)

# Ids taken from the URL; keeps lookups inside the results tree
ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()


def get_manager(settings: Settings = Depends(get_settings)) -> StorageManager:
    return StorageManager(settings.results_dir, capture_git=False)


async def read_document(manager: StorageManager, path: Path, what: str) -> Dict[str, Any]:
    data = await manager.store.read_json_optional(path)
    if data is None:
        logger.info("Document not found: %s", path)
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return data
