"""Pydantic request/response models for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ChatBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    npc_slug: str = Field(min_length=1)
    pool: str = Field(min_length=1)
    context_hash: str | None = None
    player_context: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    status: str
    loaded: bool
