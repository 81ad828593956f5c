"""ChatbaseEngine — lifecycle owner for the lookup index.

One engine is built per process and handed to request handling through the
app context (FastAPI's app.state), never through a module global.

    engine = ChatbaseEngine(FileSnapshotLoader("presets/chatbase.json"))
    await engine.initialize()            # fetch + build, once
    engine.lookup(LookupRequest(...))    # pure, synchronous

initialize() is the only suspension point. Concurrent first callers share a
single in-flight task, so the loader runs once. The index is published only
after a complete build; a failed or cancelled build leaves the engine
not-ready and the next initialize() starts over.

Stats are process-local counters keyed by "npc/pool". Unknown NPCs and pools
share an "<unknown>" key so the map stays bounded. Lookups run on the event
loop thread, so plain increments are safe; a multi-threaded host would need
a single writer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from npc_chatbase.errors import (
    ChatbaseError,
    DatasetFormatError,
    EngineNotReadyError,
    SnapshotLoadError,
)
from npc_chatbase.index import LookupIndex, build_index
from npc_chatbase.loader import SnapshotLoader
from npc_chatbase.models import TEMPLATE_POOLS, EngineConfig, LookupRequest, LookupResult
from npc_chatbase.resolver import resolve

logger = logging.getLogger(__name__)

UNKNOWN = "<unknown>"


class _Stats:
    def __init__(self) -> None:
        self.lookups = 0
        self.by_source: dict[str, int] = {"exact": 0, "pool": 0, "fallback": 0}
        self.by_bucket: dict[str, int] = {}

    @staticmethod
    def bucket_key(index: LookupIndex, request: LookupRequest) -> str:
        # slugs and pools come from callers, so only names the index or the
        # template pool list knows get their own key
        npc = request.npc_slug if index.has_npc(request.npc_slug) else UNKNOWN
        pool = request.pool
        if not (
            pool in TEMPLATE_POOLS
            or pool == index.default_pool
            or index.bucket(npc, pool) is not None
        ):
            pool = UNKNOWN
        return f"{npc}/{pool}"

    def record(self, index: LookupIndex, request: LookupRequest, result: LookupResult) -> None:
        self.lookups += 1
        self.by_source[result.source] += 1
        key = self.bucket_key(index, request)
        self.by_bucket[key] = self.by_bucket.get(key, 0) + 1


class ChatbaseEngine:
    def __init__(self, loader: SnapshotLoader, config: EngineConfig | None = None) -> None:
        self._loader = loader
        self._config = config if config is not None else EngineConfig()
        self._index: LookupIndex | None = None
        self._init_task: asyncio.Task[None] | None = None
        self._stats = _Stats()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def index(self) -> LookupIndex | None:
        return self._index

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _build(self) -> None:
        try:
            raw = await self._loader()
        except ChatbaseError:
            raise
        except Exception as e:
            raise SnapshotLoadError(f"Snapshot loader failed: {e}") from e
        try:
            index = build_index(raw, default_pool=self._config.default_pool)
        except ChatbaseError:
            raise
        except Exception as e:
            raise DatasetFormatError(f"Dataset could not be indexed: {e}") from e
        self._index = index

    def _on_build_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            logger.warning("chatbase initialization cancelled")
        elif task.exception() is not None:
            logger.error("chatbase initialization failed: %s", task.exception())
        else:
            return
        if self._init_task is task:
            self._init_task = None

    async def initialize(self) -> None:
        """Load the snapshot and build the index. Safe to call repeatedly."""
        if self._index is not None:
            return
        if self._init_task is None:
            self._init_task = asyncio.create_task(self._build())
            self._init_task.add_done_callback(self._on_build_done)
        # shield: one cancelled waiter must not cancel the build for the rest
        await asyncio.shield(self._init_task)

    def is_loaded(self) -> bool:
        return self._index is not None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def lookup(self, request: LookupRequest) -> LookupResult:
        """Resolve a request. Raises EngineNotReadyError before initialize()."""
        index = self._index
        if index is None:
            raise EngineNotReadyError("Chatbase engine is not initialized")
        result = resolve(index, request, self._config)
        self._stats.record(index, request, result)
        logger.debug(
            "lookup npc=%s pool=%s source=%s entry=%s",
            request.npc_slug, request.pool, result.source, result.entry_id,
        )
        return result

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of the process-local counters."""
        index = self._index
        by_source = dict(self._stats.by_source)
        return {
            "loaded": index is not None,
            "lookups": self._stats.lookups,
            "hits": by_source["exact"] + by_source["pool"],
            "misses": by_source["fallback"],
            "bySource": by_source,
            "byBucket": dict(self._stats.by_bucket),
            "registeredNpcs": len(index.npcs) if index else 0,
            "totalEntries": index.total_entries if index else 0,
            "skippedEntries": index.skipped if index else 0,
        }
