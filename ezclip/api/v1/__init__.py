"""
API v1 package.

Contains versioned API routes: public auth/tracking routes and admin routes.
"""

from fastapi import APIRouter

from ezclip.api.v1.admin import router as admin_router
from ezclip.api.v1.routes import router as public_router

router = APIRouter()
router.include_router(public_router)
router.include_router(admin_router)

__all__ = ["router"]
