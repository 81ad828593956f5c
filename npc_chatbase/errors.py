"""Exceptions raised by the chatbase core.

Only infrastructure problems are errors. Content gaps (no exact hit, nothing
above the scoring threshold, unknown NPC) are resolved through the fallback
tiers and never raise.
"""


class ChatbaseError(RuntimeError):
    """Base class for chatbase failures."""


class SnapshotLoadError(ChatbaseError):
    """Raised when the dataset snapshot cannot be fetched or decoded."""


class DatasetFormatError(ChatbaseError):
    """Raised when the snapshot is not any supported dataset shape."""


class EngineNotReadyError(ChatbaseError):
    """Raised by lookup() when the engine has no built index yet."""
