"""Core domain models.

The index, resolver and engine all operate on these types. Pydantic handles
validation at the dataset boundary and camelCase (de)serialisation at the
HTTP boundary; internally everything uses snake_case attribute names.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

Source = Literal["exact", "pool", "fallback"]

DEFAULT_POOL = "default"

TEMPLATE_POOLS: tuple[str, ...] = (
    "greeting",
    "farewell",
    "idle",
    "reaction",
    "threat",
    "salesPitch",
    "gamblingTrashTalk",
    "gamblingBrag",
    "gamblingFrustration",
    "lore",
    "hint",
    "challenge",
    "npcGossip",
    "npcConflict",
    "npcReaction",
    "alliance",
    "betrayal",
    "rescue",
)

MOOD_TYPES: tuple[str, ...] = (
    "neutral",
    "pleased",
    "annoyed",
    "amused",
    "threatening",
    "generous",
    "cryptic",
    "fearful",
    "curious",
    "angry",
    "scared",
    "sad",
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatEntry(_CamelModel):
    """One authored line of dialogue. Immutable once loaded."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    id: str = Field(min_length=1)
    npc_slug: str = Field(min_length=1)
    pool: str = Field(min_length=1)
    text: str = Field(min_length=1)
    mood: str = Field(min_length=1)  # authored tag, passed through as-is
    context_hash: str | None = None
    conditions: dict[str, Any] | None = None
    # lower wins ties; authoring exports call it weight
    priority: int = Field(default=0, validation_alias=AliasChoices("priority", "weight"))

    @property
    def is_exact(self) -> bool:
        return self.context_hash is not None

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.priority, self.id)


class LookupRequest(_CamelModel):
    """A single dialogue request for one NPC and pool."""

    npc_slug: str
    pool: str
    context_hash: str | None = None
    player_context: dict[str, Any] | None = None


class LookupResult(_CamelModel):
    """The line chosen for a request. Every field is always populated."""

    text: str
    mood: str
    source: Source
    entry_id: str
    confidence: float = Field(ge=0.0, le=1.0)


class EngineConfig(BaseModel):
    """Tunables for the resolver.

    Exact hits always report 1.0; pool hits are capped below that, and both
    fallback confidences sit below the scoring threshold so that
    exact > pool > fallback holds for any dataset.
    """

    score_threshold: float = 0.5
    pool_confidence_cap: float = 0.95
    fallback_confidence: float = 0.15
    global_fallback_confidence: float = 0.1
    default_pool: str = DEFAULT_POOL

    @model_validator(mode="after")
    def check_ordering(self) -> EngineConfig:
        if not (
            1.0 > self.pool_confidence_cap > self.score_threshold
            >= self.fallback_confidence > self.global_fallback_confidence >= 0.0
        ):
            raise ValueError(
                "confidences must satisfy 1.0 > pool_confidence_cap > "
                "score_threshold >= fallback_confidence > "
                "global_fallback_confidence >= 0"
            )
        return self
