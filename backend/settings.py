"""Shell configuration (dataset source, CORS, pools, rate limits).

get_settings() returns defaults merged with environment values. The launcher
and app load .env first, so values there behave like real environment
variables. List values are comma-separated.

  CHATBASE_PATH              dataset file or chatbase directory
  CHATBASE_URL               dataset URL; wins over CHATBASE_PATH when set
  CHATBASE_API_KEY           bearer token for CHATBASE_URL
  ALLOWED_ORIGINS            CORS allow-list
  ALLOWED_POOLS              pools accepted by POST /api/chat
  RATE_LIMIT_MAX_REQUESTS    requests per client per window (0 disables)
  RATE_LIMIT_WINDOW_SECONDS  window length
  DEV_MODE                   "1"/"true": allow any CORS origin
  PRELOAD                    "1"/"true": build the index at startup
"""

import os
from pathlib import Path
from typing import Any

from npc_chatbase import DEFAULT_POOL, TEMPLATE_POOLS
from npc_chatbase.loader import FileSnapshotLoader, HttpSnapshotLoader, SnapshotLoader

DEFAULT_DATASET = Path(__file__).parent.parent / "presets" / "chatbase.json"

_SETTINGS_DEFAULTS: dict[str, Any] = {
    "chatbase_path": str(DEFAULT_DATASET),
    "chatbase_url": "",
    "chatbase_api_key": "",
    "allowed_origins": [
        "https://neverdieguy.com",
        "https://www.neverdieguy.com",
        "https://neverdieguy-26.vercel.app",
        "http://localhost:5173",
        "http://localhost:3000",
    ],
    "allowed_pools": [*TEMPLATE_POOLS, DEFAULT_POOL],
    "rate_limit_max_requests": 60,
    "rate_limit_window_seconds": 60.0,
    "dev_mode": False,
    "preload": False,
}


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_settings(env: dict[str, str] | None = None) -> dict[str, Any]:
    """Read settings, returning defaults merged with environment values."""
    env = os.environ if env is None else env
    settings: dict[str, Any] = {
        "chatbase_path": _SETTINGS_DEFAULTS["chatbase_path"],
        "chatbase_url": _SETTINGS_DEFAULTS["chatbase_url"],
        "chatbase_api_key": _SETTINGS_DEFAULTS["chatbase_api_key"],
        "allowed_origins": list(_SETTINGS_DEFAULTS["allowed_origins"]),
        "allowed_pools": list(_SETTINGS_DEFAULTS["allowed_pools"]),
        "rate_limit_max_requests": _SETTINGS_DEFAULTS["rate_limit_max_requests"],
        "rate_limit_window_seconds": _SETTINGS_DEFAULTS["rate_limit_window_seconds"],
        "dev_mode": _SETTINGS_DEFAULTS["dev_mode"],
        "preload": _SETTINGS_DEFAULTS["preload"],
    }
    if env.get("CHATBASE_PATH"):
        settings["chatbase_path"] = env["CHATBASE_PATH"]
    if env.get("CHATBASE_URL"):
        settings["chatbase_url"] = env["CHATBASE_URL"]
    if env.get("CHATBASE_API_KEY"):
        settings["chatbase_api_key"] = env["CHATBASE_API_KEY"]
    if env.get("ALLOWED_ORIGINS"):
        settings["allowed_origins"] = _split(env["ALLOWED_ORIGINS"])
    if env.get("ALLOWED_POOLS"):
        settings["allowed_pools"] = _split(env["ALLOWED_POOLS"])
    if env.get("RATE_LIMIT_MAX_REQUESTS"):
        settings["rate_limit_max_requests"] = int(env["RATE_LIMIT_MAX_REQUESTS"])
    if env.get("RATE_LIMIT_WINDOW_SECONDS"):
        settings["rate_limit_window_seconds"] = float(env["RATE_LIMIT_WINDOW_SECONDS"])
    if "DEV_MODE" in env:
        settings["dev_mode"] = _flag(env["DEV_MODE"])
    if "PRELOAD" in env:
        settings["preload"] = _flag(env["PRELOAD"])
    return settings


def loader_from_settings(settings: dict[str, Any]) -> SnapshotLoader:
    """HTTP loader when a URL is configured, else the file/directory loader."""
    if settings.get("chatbase_url"):
        return HttpSnapshotLoader(
            settings["chatbase_url"], api_key=settings.get("chatbase_api_key", ""),
        )
    return FileSnapshotLoader(settings["chatbase_path"])
