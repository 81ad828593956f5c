"""Health check and lookup stats endpoints."""

from fastapi import APIRouter, Depends

from npc_chatbase import ChatbaseEngine

from .chat import get_engine
from .models import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(engine: ChatbaseEngine = Depends(get_engine)):
    """Health check; `loaded` reports whether the index is built."""
    loaded = engine.is_loaded()
    return HealthResponse(status="ok" if loaded else "loading", loaded=loaded)


@router.get("/stats")
async def stats(engine: ChatbaseEngine = Depends(get_engine)):
    """Process-local lookup counters."""
    return engine.get_stats()
