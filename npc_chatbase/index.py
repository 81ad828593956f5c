"""In-memory lookup index built once from a dataset snapshot.

The snapshot is flattened into entry records, each record is validated into a
ChatEntry, and entries are filed into per-(npc, pool) buckets:

    exact       contextHash -> ChatEntry   (entries that carry a contextHash)
    candidates  sorted by (priority, id)   (everything else)

Accepted snapshot shapes:

    [record, ...]
    {"entries": [record, ...]}
    {"npc": {"slug": ...}, "entries": [...]}      per-NPC file; entries inherit the slug
    {"npcs": [<per-NPC file>, ...]}

Any of the mapping shapes may carry a "globalFallback" record that replaces
the built-in narrator line used for unknown NPCs.

Records from the authoring pipeline's format are normalised on the way in:
speaker.slug stands in for npcSlug, and metrics.interestScore (0-100) becomes
priority = 100 - interestScore when no explicit priority is given.

Malformed records and broken NPC files are logged and skipped; both count
towards `skipped`. Duplicate ids and duplicate contextHashes within one
bucket keep the first occurrence.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from pydantic import ValidationError

from npc_chatbase.errors import DatasetFormatError
from npc_chatbase.models import DEFAULT_POOL, ChatEntry

logger = logging.getLogger(__name__)

GLOBAL_FALLBACK = ChatEntry(
    id="global-fallback",
    npc_slug="narrator",
    pool=DEFAULT_POOL,
    text="*observes silently*",
    mood="neutral",
)

BucketKey = tuple[str, str]


@dataclass(frozen=True)
class Bucket:
    """All entries for one (npc, pool) pair."""

    exact: dict[str, ChatEntry] = field(default_factory=dict)
    candidates: tuple[ChatEntry, ...] = ()

    @property
    def scored(self) -> tuple[ChatEntry, ...]:
        return tuple(e for e in self.candidates if e.conditions)

    @property
    def generic(self) -> tuple[ChatEntry, ...]:
        return tuple(e for e in self.candidates if not e.conditions)

    def __len__(self) -> int:
        return len(self.exact) + len(self.candidates)


@dataclass(frozen=True)
class LookupIndex:
    """Immutable result of build_index()."""

    buckets: dict[BucketKey, Bucket]
    global_fallback: ChatEntry = GLOBAL_FALLBACK
    default_pool: str = DEFAULT_POOL
    skipped: int = 0
    npcs: frozenset[str] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "npcs", frozenset(npc for npc, _ in self.buckets))

    @property
    def total_entries(self) -> int:
        return sum(len(b) for b in self.buckets.values())

    def has_npc(self, npc_slug: str) -> bool:
        return npc_slug in self.npcs

    def bucket(self, npc_slug: str, pool: str) -> Bucket | None:
        return self.buckets.get((npc_slug, pool))

    def default_bucket(self, npc_slug: str) -> Bucket | None:
        return self.buckets.get((npc_slug, self.default_pool))

    def pools_for(self, npc_slug: str) -> list[str]:
        return sorted(pool for npc, pool in self.buckets if npc == npc_slug)


# ---------------------------------------------------------------------------
# Snapshot flattening
# ---------------------------------------------------------------------------

def _normalise(record: Any, npc_slug: str | None = None) -> Any:
    if not isinstance(record, dict):
        return record  # let validation reject it
    data = dict(record)
    if "npcSlug" not in data and "npc_slug" not in data:
        speaker = data.get("speaker")
        if isinstance(speaker, dict) and speaker.get("slug"):
            data["npcSlug"] = speaker["slug"]
        elif npc_slug:
            data["npcSlug"] = npc_slug
    if "priority" not in data and "weight" not in data:
        metrics = data.get("metrics")
        if isinstance(metrics, dict):
            score = metrics.get("interestScore")
            if isinstance(score, (int, float)) and not isinstance(score, bool):
                # NaN/Infinity are passed through so validation rejects the record
                data["priority"] = 100 - int(score) if math.isfinite(score) else score
    return data


def _npc_file_records(npc_file: dict) -> list[Any]:
    npc = npc_file.get("npc")
    slug = npc.get("slug") if isinstance(npc, dict) else None
    entries = npc_file.get("entries")
    if not isinstance(entries, list):
        raise DatasetFormatError("'entries' must be a list")
    return [_normalise(record, slug) for record in entries]


def flatten_snapshot(raw: Any) -> tuple[list[Any], Any | None, int]:
    """Return (records, global_fallback_record, skipped_npc_files).

    In the {"npcs": [...]} shape a broken NPC file is logged and skipped so
    the other NPCs still load. Any other unusable shape raises.
    """
    if isinstance(raw, list):
        return [_normalise(r) for r in raw], None, 0
    if not isinstance(raw, dict):
        raise DatasetFormatError(
            f"Unsupported dataset type: {type(raw).__name__}"
        )

    fallback = raw.get("globalFallback")
    if "npcs" in raw:
        npc_files = raw["npcs"]
        if not isinstance(npc_files, list):
            raise DatasetFormatError("'npcs' must be a list of NPC files")
        records: list[Any] = []
        skipped = 0
        for pos, npc_file in enumerate(npc_files):
            try:
                if not isinstance(npc_file, dict):
                    raise DatasetFormatError("NPC file must be an object")
                records.extend(_npc_file_records(npc_file))
            except DatasetFormatError as e:
                skipped += 1
                logger.warning("skipping NPC file pos=%d: %s", pos, e)
        return records, fallback, skipped
    if "entries" in raw:
        return _npc_file_records(raw), fallback, 0
    raise DatasetFormatError("Dataset has neither 'entries' nor 'npcs'")


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def _validate(records: Iterable[Any]) -> tuple[list[ChatEntry], int]:
    entries: list[ChatEntry] = []
    skipped = 0
    for pos, record in enumerate(records):
        try:
            entries.append(ChatEntry.model_validate(record))
        except ValidationError as e:
            skipped += 1
            ident = record.get("id") if isinstance(record, dict) else None
            logger.warning(
                "skipping malformed record pos=%d id=%s errors=%d",
                pos, ident, e.error_count(),
            )
    return entries, skipped


def _global_fallback(record: Any) -> ChatEntry:
    if record is None:
        return GLOBAL_FALLBACK
    try:
        return ChatEntry.model_validate(_normalise(record, GLOBAL_FALLBACK.npc_slug))
    except ValidationError:
        logger.warning("globalFallback record is malformed; using built-in line")
        return GLOBAL_FALLBACK


def build_index(raw: Any, default_pool: str = DEFAULT_POOL) -> LookupIndex:
    """Parse a raw snapshot into a LookupIndex.

    Raises DatasetFormatError only when the top-level shape is unusable;
    individual bad records and NPC files are skipped.
    """
    records, fallback_record, skipped_files = flatten_snapshot(raw)
    entries, skipped = _validate(records)
    skipped += skipped_files

    exact: dict[BucketKey, dict[str, ChatEntry]] = {}
    candidates: dict[BucketKey, list[ChatEntry]] = {}
    seen_ids: dict[BucketKey, set[str]] = {}

    for entry in entries:
        key = (entry.npc_slug, entry.pool)
        ids = seen_ids.setdefault(key, set())
        if entry.id in ids:
            skipped += 1
            logger.warning("skipping duplicate id=%s bucket=%s/%s", entry.id, *key)
            continue
        bucket_exact = exact.setdefault(key, {})
        bucket_candidates = candidates.setdefault(key, [])
        if entry.is_exact:
            if entry.context_hash in bucket_exact:
                skipped += 1
                logger.warning(
                    "skipping duplicate contextHash id=%s bucket=%s/%s",
                    entry.id, *key,
                )
                continue
            bucket_exact[entry.context_hash] = entry
        else:
            bucket_candidates.append(entry)
        ids.add(entry.id)

    buckets = {
        key: Bucket(
            exact=exact[key],
            candidates=tuple(sorted(candidates[key], key=lambda e: e.sort_key)),
        )
        for key in sorted(exact)
    }
    index = LookupIndex(
        buckets=buckets,
        global_fallback=_global_fallback(fallback_record),
        default_pool=default_pool,
        skipped=skipped,
    )
    logger.info(
        "chatbase index built npcs=%d buckets=%d entries=%d skipped=%d",
        len(index.npcs), len(buckets), index.total_entries, skipped,
    )
    return index
