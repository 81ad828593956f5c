"""Tiered dialogue resolution against a built LookupIndex.

resolve() maps one LookupRequest to exactly one LookupResult. Tiers run in
order and each only runs when the previous one produced nothing:

  1. exact     contextHash found in the (npc, pool) bucket -> confidence 1.0
  2. pool      best condition-scored candidate above the threshold
  3. fallback  a condition-free line for the NPC, walking the fallback pool
               chain: requested pool, default pool, related pools; if the NPC
               has none, a built-in generic line for the pool
  4. fallback  the global narrator line for NPCs the index has never seen

Scoring: each candidate's `conditions` maps a player-context attribute to a
predicate. A scalar means equality, a list means membership, and a dict of
operators (eq, ne, gt, gte, lt, lte, in, notIn) must hold in full. Missing
attributes never match. The score is the fraction of satisfied predicates.

Ranking among scored candidates: score, then whether the entry's mood fits
the mood bucket inferred from the player context, then lowest priority, then
lowest id. Fallback picks use a SHA-256 of the request, so identical requests
always get the same line without relying on a clock or an unseeded RNG.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Callable, Literal

from npc_chatbase.index import Bucket, LookupIndex
from npc_chatbase.models import ChatEntry, EngineConfig, LookupRequest, LookupResult

MoodBucket = Literal["hostile", "negative", "neutral", "positive", "generous"]

RELATED_POOLS: dict[str, tuple[str, ...]] = {
    "greeting": ("idle", "reaction"),
    "farewell": ("idle", "reaction"),
    "idle": ("greeting", "reaction"),
    "salesPitch": ("greeting", "idle"),
    "threat": ("challenge", "reaction"),
    "challenge": ("threat", "gamblingTrashTalk"),
    "gamblingTrashTalk": ("challenge", "threat"),
    "gamblingBrag": ("gamblingTrashTalk", "reaction"),
    "gamblingFrustration": ("threat", "reaction"),
    "hint": ("lore", "reaction"),
    "lore": ("hint", "reaction"),
    "reaction": ("idle", "greeting"),
    "npcGossip": ("lore", "reaction"),
    "npcConflict": ("threat", "challenge"),
    "npcReaction": ("reaction", "idle"),
    "alliance": ("greeting", "reaction"),
    "betrayal": ("threat", "npcConflict"),
    "rescue": ("reaction", "alliance"),
}
_DEFAULT_RELATED = ("reaction", "idle")

# (text, mood) used when a known NPC has no condition-free line anywhere in
# its fallback chain.
POOL_FALLBACK_LINES: dict[str, tuple[str, str]] = {
    "greeting": ("...", "neutral"),
    "farewell": ("Until next time.", "neutral"),
    "idle": ("*observes silently*", "neutral"),
    "reaction": ("Hmm.", "curious"),
    "threat": ("We shall see.", "threatening"),
    "salesPitch": ("Care to browse?", "neutral"),
    "gamblingTrashTalk": ("The dice decide.", "neutral"),
    "gamblingBrag": ("Victory is mine.", "pleased"),
    "gamblingFrustration": ("Curse these dice!", "annoyed"),
    "lore": ("There are mysteries here.", "cryptic"),
    "hint": ("Be careful.", "neutral"),
    "challenge": ("Prove yourself.", "neutral"),
}

_MOOD_BUCKETS: dict[str, MoodBucket] = {
    "threatening": "hostile",
    "angry": "hostile",
    "annoyed": "negative",
    "fearful": "negative",
    "scared": "negative",
    "sad": "negative",
    "pleased": "positive",
    "amused": "positive",
    "generous": "generous",
}

_MOOD_GROUPS: tuple[frozenset[str], ...] = (
    frozenset({"hostile", "negative"}),
    frozenset({"positive", "generous"}),
)


# ---------------------------------------------------------------------------
# Condition scoring
# ---------------------------------------------------------------------------

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": lambda a, b: _equals(a, b),
    "ne": lambda a, b: not _equals(a, b),
    "gt": lambda a, b: a > b,
    "gte": lambda a, b: a >= b,
    "lt": lambda a, b: a < b,
    "lte": lambda a, b: a <= b,
    "in": lambda a, b: any(_equals(a, x) for x in b),
    "notIn": lambda a, b: not any(_equals(a, x) for x in b),
}


def _equals(actual: Any, expected: Any) -> bool:
    # True must not match 1 and vice versa
    if isinstance(expected, bool) or isinstance(actual, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual is expected
    return actual == expected


def predicate_holds(actual: Any, expected: Any) -> bool:
    """Check one condition value against one player-context value."""
    if isinstance(expected, dict):
        if not expected:
            return False
        for op, operand in expected.items():
            check = _OPERATORS.get(op)
            if check is None:
                return False
            try:
                if not check(actual, operand):
                    return False
            except TypeError:
                return False
        return True
    if isinstance(expected, list):
        return any(_equals(actual, x) for x in expected)
    return _equals(actual, expected)


def score_entry(entry: ChatEntry, player_context: dict[str, Any] | None) -> float:
    """Fraction of the entry's conditions satisfied by the player context."""
    if not entry.conditions:
        return 0.0
    context = player_context or {}
    satisfied = sum(
        1 for attr, expected in entry.conditions.items()
        if attr in context and predicate_holds(context[attr], expected)
    )
    return satisfied / len(entry.conditions)


# ---------------------------------------------------------------------------
# Mood buckets
# ---------------------------------------------------------------------------

def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def infer_mood_bucket(player_context: dict[str, Any] | None) -> MoodBucket:
    """Map deaths/streak in the player context to the mood NPCs should take."""
    if not player_context:
        return "neutral"
    deaths = _number(player_context.get("deaths"))
    streak = _number(player_context.get("streak"))
    if deaths is not None:
        if deaths > 100:
            return "hostile"
        if deaths > 50:
            return "negative"
    if streak is not None:
        if streak > 10:
            return "generous"
        if streak > 5:
            return "positive"
        if streak < -5:
            return "hostile"
        if streak < -3:
            return "negative"
    return "neutral"


def quantize_mood(mood: str) -> MoodBucket:
    return _MOOD_BUCKETS.get(mood, "neutral")


def mood_compatible(entry_mood: MoodBucket, target: MoodBucket) -> bool:
    if entry_mood == target or "neutral" in (entry_mood, target):
        return True
    return any(entry_mood in g and target in g for g in _MOOD_GROUPS)


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

def request_digest(request: LookupRequest) -> str:
    """Stable fingerprint of a request, independent of dict ordering."""
    payload = json.dumps(
        [request.npc_slug, request.pool, request.context_hash, request.player_context or {}],
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _stable_pick(entries: tuple[ChatEntry, ...], request: LookupRequest) -> ChatEntry:
    return entries[int(request_digest(request)[:16], 16) % len(entries)]


def _result(entry: ChatEntry, source: str, confidence: float) -> LookupResult:
    return LookupResult(
        text=entry.text,
        mood=entry.mood,
        source=source,
        entry_id=entry.id,
        confidence=confidence,
    )


def _exact_tier(bucket: Bucket | None, request: LookupRequest) -> ChatEntry | None:
    if bucket is None or request.context_hash is None:
        return None
    return bucket.exact.get(request.context_hash)


def _scored_tier(
    bucket: Bucket | None, request: LookupRequest, threshold: float,
) -> tuple[ChatEntry, float] | None:
    if bucket is None:
        return None
    target = infer_mood_bucket(request.player_context)
    best: tuple[tuple, ChatEntry, float] | None = None
    for entry in bucket.scored:
        score = score_entry(entry, request.player_context)
        if score <= threshold:
            continue
        misfit = 0 if mood_compatible(quantize_mood(entry.mood), target) else 1
        rank = (-score, misfit, entry.priority, entry.id)
        if best is None or rank < best[0]:
            best = (rank, entry, score)
    if best is None:
        return None
    return best[1], best[2]


def fallback_chain(pool: str, default_pool: str) -> list[str]:
    chain = [pool, default_pool, *RELATED_POOLS.get(pool, _DEFAULT_RELATED)]
    return list(dict.fromkeys(chain))


def _npc_fallback_tier(
    index: LookupIndex, request: LookupRequest,
) -> ChatEntry:
    for pool in fallback_chain(request.pool, index.default_pool):
        bucket = index.bucket(request.npc_slug, pool)
        if bucket is None:
            continue
        generic = bucket.generic
        if generic:
            return _stable_pick(generic, request)
    line_pool = request.pool if request.pool in POOL_FALLBACK_LINES else "idle"
    text, mood = POOL_FALLBACK_LINES[line_pool]
    return ChatEntry(
        id=f"fallback:{line_pool}",
        npc_slug=request.npc_slug,
        pool=line_pool,
        text=text,
        mood=mood,
    )


def resolve(
    index: LookupIndex,
    request: LookupRequest,
    config: EngineConfig | None = None,
) -> LookupResult:
    """Resolve one request. Never raises for missing content."""
    if config is None:
        config = EngineConfig()

    if not index.has_npc(request.npc_slug):
        return _result(
            index.global_fallback, "fallback", config.global_fallback_confidence,
        )

    bucket = index.bucket(request.npc_slug, request.pool)

    entry = _exact_tier(bucket, request)
    if entry is not None:
        return _result(entry, "exact", 1.0)

    scored = _scored_tier(bucket, request, config.score_threshold)
    if scored is not None:
        entry, score = scored
        return _result(entry, "pool", min(score, config.pool_confidence_cap))

    return _result(
        _npc_fallback_tier(index, request), "fallback", config.fallback_confidence,
    )
