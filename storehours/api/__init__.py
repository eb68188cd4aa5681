"""
API package for the store hours backend.

This package aggregates all API routers to be included in the FastAPI
application. The API is versioned under ``/api/v1``.
"""

from fastapi import APIRouter, Depends
from .v1.base_hours import router as base_hours_router
from .v1.rules import router as rules_router
from .v1.occurrences import router as occurrences_router
from .v1.manifest import router as manifest_router
from .v1.change_log import router as change_log_router
from .v1.templates import router as templates_router
from .v1.health import router as health_router
from ..core.auth import get_current_user

api_router = APIRouter()
protected = [Depends(get_current_user)]
api_router.include_router(base_hours_router, dependencies=protected)
api_router.include_router(rules_router, dependencies=protected)
api_router.include_router(occurrences_router, dependencies=protected)
api_router.include_router(manifest_router, dependencies=protected)
api_router.include_router(change_log_router, dependencies=protected)
api_router.include_router(templates_router, dependencies=protected)
api_router.include_router(health_router)
