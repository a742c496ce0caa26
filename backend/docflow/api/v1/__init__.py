"""API v1 routers"""

from fastapi import APIRouter

from .activity import router as activity_router
from .admin import router as admin_router
from .branches import router as branches_router
from .documents import router as documents_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(documents_router)
api_router.include_router(branches_router)
api_router.include_router(activity_router)
api_router.include_router(admin_router)

__all__ = ["api_router"]
