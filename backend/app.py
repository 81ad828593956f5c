import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.ratelimit import RateLimiter
from backend.routes import router
from backend.settings import get_settings, loader_from_settings
from npc_chatbase import ChatbaseEngine, ChatbaseError

load_dotenv(Path(__file__).parent.parent / ".env")

logger = logging.getLogger(__name__)


def create_app(
    settings: dict[str, Any] | None = None,
    engine: ChatbaseEngine | None = None,
) -> FastAPI:
    resolved = settings or get_settings()
    if engine is None:
        engine = ChatbaseEngine(loader_from_settings(resolved))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if resolved["preload"]:
            try:
                await engine.initialize()
            except ChatbaseError as e:
                # stay up; /api/chat retries on the next request
                logger.warning("preload failed: %s", e)
        yield

    app = FastAPI(title="NPC Chatbase", lifespan=lifespan)
    app.state.settings = resolved
    app.state.engine = engine
    app.state.rate_limiter = RateLimiter(
        resolved["rate_limit_max_requests"], resolved["rate_limit_window_seconds"],
    )

    origins = ["*"] if resolved["dev_mode"] else resolved["allowed_origins"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-RateLimit-Remaining"],
    )
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (reads CHATBASE_* env vars)
app = create_app()
