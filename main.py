"""NPC Chatbase — dev launcher. Starts the API in watch mode or checks a dataset."""

import argparse
import asyncio
import logging
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def check_dataset(path: Path) -> int:
    """Build the index from a dataset and print what it contains."""
    from npc_chatbase import ChatbaseEngine, ChatbaseError, FileSnapshotLoader

    engine = ChatbaseEngine(FileSnapshotLoader(path))
    try:
        asyncio.run(engine.initialize())
    except ChatbaseError as e:
        print(f"Dataset failed to load: {e}", file=sys.stderr)
        return 1

    index = engine.index
    for npc in sorted(index.npcs):
        pools = ", ".join(
            f"{pool}({len(index.bucket(npc, pool))})" for pool in index.pools_for(npc)
        )
        print(f"{npc}: {pools}")
    print(f"{len(index.npcs)} NPCs, {index.total_entries} entries, {index.skipped} skipped")
    return 0


def main():
    parser = argparse.ArgumentParser(description="NPC Chatbase dev launcher")
    parser.add_argument("--data", type=Path, default=None,
                        help="Dataset file or chatbase directory (default: presets/chatbase.json)")
    parser.add_argument("--check", action="store_true",
                        help="Build the index, print a summary, and exit")
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.check:
        data = args.data or ROOT / "presets" / "chatbase.json"
        sys.exit(check_dataset(data))

    # Build env for the subprocess so the backend picks up the same dataset
    env = os.environ.copy()
    if args.data:
        env["CHATBASE_PATH"] = str(args.data.resolve())

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    proc = subprocess.Popen(
        ["uv", "run", "uvicorn", "backend.app:app", "--reload", "--host", HOST,
         "--port", BACKEND_PORT, "--log-level", LOG_LEVEL.lower()],
        cwd=ROOT, env=env,
    )

    def shutdown(*_):
        print("\nShutting down...")
        proc.terminate()
        proc.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    proc.wait()


if __name__ == "__main__":
    main()
