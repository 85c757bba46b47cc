"""API router definitions."""

from fastapi import APIRouter

from .logs import router as logs_router
from .products import router as products_router
from .routes import health_router
from .submissions import export_router
from .submissions import router as submissions_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(submissions_router)
api_router.include_router(export_router)
api_router.include_router(products_router)
api_router.include_router(logs_router)

__all__ = ["api_router"]
