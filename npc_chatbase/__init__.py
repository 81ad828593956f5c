"""Deterministic NPC dialogue lookup.

Selects pre-authored lines from a curated dataset:

    loader  ->  build_index()  ->  resolve()  ->  ChatbaseEngine

Nothing here generates text; every answer is an authored entry or a built-in
fallback line.
"""

from .engine import ChatbaseEngine  # noqa: F401
from .errors import (  # noqa: F401
    ChatbaseError,
    DatasetFormatError,
    EngineNotReadyError,
    SnapshotLoadError,
)
from .index import GLOBAL_FALLBACK, Bucket, LookupIndex, build_index  # noqa: F401
from .loader import (  # noqa: F401
    FileSnapshotLoader,
    HttpSnapshotLoader,
    SnapshotLoader,
    StaticSnapshotLoader,
)
from .models import (  # noqa: F401
    DEFAULT_POOL,
    MOOD_TYPES,
    TEMPLATE_POOLS,
    ChatEntry,
    EngineConfig,
    LookupRequest,
    LookupResult,
)
from .resolver import resolve  # noqa: F401
