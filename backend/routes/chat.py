"""NPC dialogue lookup endpoint."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from backend.ratelimit import enforce_rate_limit
from npc_chatbase import ChatbaseEngine, ChatbaseError, LookupRequest, LookupResult

from .models import ChatBody

logger = logging.getLogger(__name__)

router = APIRouter()


def get_engine(request: Request) -> ChatbaseEngine:
    return request.app.state.engine


@router.post(
    "/chat",
    response_model=LookupResult,
    dependencies=[Depends(enforce_rate_limit)],
)
async def chat(body: ChatBody, request: Request, engine: ChatbaseEngine = Depends(get_engine)):
    """Return an authored line for an NPC and pool."""
    allowed_pools = request.app.state.settings["allowed_pools"]
    if body.pool not in allowed_pools:
        raise HTTPException(400, f"Unknown pool: {body.pool}")
    try:
        await engine.initialize()
        return engine.lookup(LookupRequest(**body.model_dump()))
    except ChatbaseError as e:
        logger.warning("chat unavailable npc=%s pool=%s: %s", body.npc_slug, body.pool, e)
        raise HTTPException(503, "Chatbase not ready")
