"""API endpoints for the hiring pipeline."""

from fastapi import APIRouter

from .health import router as health_router
from .applications import router as applications_router

# Create main API router
api_router = APIRouter()

# Include all routers
api_router.include_router(health_router, prefix="/health", tags=["Health"])
api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

__all__ = ["api_router"]
