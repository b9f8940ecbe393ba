"""API routes for Community Trust."""

from fastapi import APIRouter

from .comments import router as comments_router
from .listings import router as listings_router
from .notifications import router as notifications_router
from .trust import router as trust_router

# Main API router
api_router = APIRouter()

api_router.include_router(listings_router)
api_router.include_router(comments_router)
api_router.include_router(notifications_router)
api_router.include_router(trust_router)

__all__ = ["api_router"]
