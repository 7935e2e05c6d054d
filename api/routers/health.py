"""
Health check and API information endpoints.
"""

from fastapi import APIRouter, Depends
from datetime import datetime, timezone

from api.dependencies import get_manager
from api.models import ApiInfo, HealthResponse
from ormbench import StorageManager, __version__

router = APIRouter(tags=["health"])


@router.get("/", response_model=ApiInfo)
async def root():
    """Root endpoint - API information"""
    return ApiInfo(
        name="ORM Benchmark Results API",
        version=__version__,
        status="running",
        endpoints={
            "health": "/health",
            "index": "/api/v1/index",
            "dashboard": "/api/v1/dashboard",
            "runs": "/api/v1/runs",
            "run": "/api/v1/runs/{run_id}",
            "latest_comparison": "/api/v1/comparisons/latest",
            "category_comparison": "/api/v1/comparisons/{category}",
            "library": "/api/v1/libraries/{library_id}",
            "library_timeline": "/api/v1/libraries/{library_id}/timeline",
            "scenario": "/api/v1/scenarios/{scenario_id}",
            "category": "/api/v1/categories/{category}",
        },
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(manager: StorageManager = Depends(get_manager)):
    """
    Health check endpoint.
    Reports whether the results store has a runs index yet.
    """
    available = await manager.store.exists(manager.layout.runs_index)
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        results_dir=str(manager.base_dir),
        results_available=available,
        message=None if available else "No benchmark runs recorded yet.",
    )
