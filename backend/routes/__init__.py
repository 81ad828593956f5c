"""FastAPI API endpoints under /api.

Endpoint groups: chat (dialogue lookup), health, stats. The engine, settings
and rate limiter are read from app.state, set up by backend.app.create_app().
"""

from fastapi import APIRouter

from .chat import router as chat_router
from .health import router as health_router

router = APIRouter()
router.include_router(health_router)
router.include_router(chat_router)
