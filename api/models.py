"""
Pydantic models for API responses.

Stored documents are returned as written; only the service endpoints have
their own response models.
"""

from pydantic import BaseModel
from typing import Dict, Optional


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    results_dir: str
    results_available: bool
    message: Optional[str] = None


class ApiInfo(BaseModel):
    name: str
    version: str
    status: str
    endpoints: Dict[str, str]
