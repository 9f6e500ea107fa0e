"""FastAPI routers for the feeds service."""

from __future__ import annotations

from fastapi import APIRouter

from app.feeds.api import auth, feeds, notifications

router = APIRouter(prefix="/api")

router.include_router(feeds.router)
router.include_router(notifications.router)
router.include_router(auth.router)

__all__ = ["router"]
