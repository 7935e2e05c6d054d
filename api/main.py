"""
ORM Benchmark Results API

Read-only FastAPI application serving the aggregated benchmark documents to
the dashboard. Run with ``uvicorn api.main:app``.
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import aggregates, comparisons, dashboard, health, runs
from ormbench import __version__

# Configure logging
logging.basicConfig(
    level=os.getenv("ORMBENCH_LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = FastAPI(
    title="ORM Benchmark Results API",
    description="Read-only access to benchmark runs, aggregates, comparisons and timelines",
    version=__version__,
)

# The dashboard is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(dashboard.router)
app.include_router(runs.router)
app.include_router(comparisons.router)
app.include_router(aggregates.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
