"""Snapshot loaders — fetch the curated dataset the index is built from.

The engine injects a loader callable matching the protocol:

    async def __call__(self) -> Any: ...

The return value is the raw dataset (see npc_chatbase.index for the accepted
shapes). The engine calls it once per process; retrying after a failure is
left to the next initialize() call.

Three implementations are provided:

    FileSnapshotLoader    — a JSON file, or a chatbase directory with one
                            npcs/<slug>.json file per NPC.
    HttpSnapshotLoader    — GETs the dataset from an HTTP endpoint (object
                            storage, a KV gateway, a CDN).
    StaticSnapshotLoader  — returns a dataset already in memory.

Every failure surfaces as SnapshotLoadError.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

import httpx

from npc_chatbase.errors import SnapshotLoadError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol: every loader must match this signature
# ---------------------------------------------------------------------------

class SnapshotLoader(Protocol):
    async def __call__(self) -> Any: ...


# ---------------------------------------------------------------------------
# FileSnapshotLoader
# ---------------------------------------------------------------------------

class FileSnapshotLoader:
    """Reads the dataset from disk.

    A file path is parsed as a single JSON document. A directory is treated
    as a chatbase export: every npcs/*.json file is read in filename order and
    the result is returned as {"npcs": [...]}. A manifest.json alongside is
    ignored. An NPC file that cannot be read or parsed is logged and left as
    null, so the rest of the dataset still loads.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def _read_json(self, path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise SnapshotLoadError(f"Cannot read dataset file {path}") from e
        except json.JSONDecodeError as e:
            raise SnapshotLoadError(f"Dataset file {path} is not valid JSON") from e

    def _read_directory(self) -> dict[str, Any]:
        npcs_dir = self._path / "npcs"
        if not npcs_dir.is_dir():
            raise SnapshotLoadError(f"No npcs/ directory under {self._path}")
        npc_files: list[Any] = []
        for path in sorted(npcs_dir.glob("*.json")):
            try:
                npc_files.append(self._read_json(path))
            except SnapshotLoadError as e:
                # null keeps the slot so build_index counts the file as skipped
                logger.warning("skipping NPC file %s: %s", path.name, e)
                npc_files.append(None)
        return {"npcs": npc_files}

    async def __call__(self) -> Any:
        logger.debug("loading dataset path=%s", self._path)
        if self._path.is_dir():
            return self._read_directory()
        if not self._path.is_file():
            raise SnapshotLoadError(f"Dataset not found at {self._path}")
        return self._read_json(self._path)


# ---------------------------------------------------------------------------
# HttpSnapshotLoader
# ---------------------------------------------------------------------------

class HttpSnapshotLoader:
    """Fetches the dataset with a single GET.

    Args:
        url:      Full URL of the dataset document.
        api_key:  Bearer token, or empty string if not required.
        timeout:  HTTP timeout in seconds. Defaults to 30.
    """

    def __init__(self, url: str, api_key: str = "", timeout: float = 30.0) -> None:
        self._url = url
        self._api_key = api_key
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def __call__(self) -> Any:
        logger.debug("loading dataset url=%s", self._url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(self._url, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise SnapshotLoadError(f"Cannot connect to dataset host at {self._url}") from e
        except httpx.HTTPStatusError as e:
            raise SnapshotLoadError(
                f"Dataset host returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise SnapshotLoadError(f"Dataset host timed out after {self._timeout}s") from e

        try:
            return resp.json()
        except ValueError as e:
            raise SnapshotLoadError("Dataset response is not valid JSON") from e


# ---------------------------------------------------------------------------
# StaticSnapshotLoader
# ---------------------------------------------------------------------------

class StaticSnapshotLoader:
    """Returns a dataset that is already in memory. No I/O."""

    def __init__(self, data: Any) -> None:
        self._data = data

    async def __call__(self) -> Any:
        return self._data
