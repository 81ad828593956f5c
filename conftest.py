import json
from pathlib import Path

import pytest

from npc_chatbase import ChatbaseEngine, StaticSnapshotLoader, build_index

PRESETS_DIR = Path(__file__).parent / "presets"

SAMPLE_RECORDS = [
    {"id": "e1", "npcSlug": "mr-bones", "pool": "greeting", "contextHash": "abc123",
     "text": "Your account is overdue...", "mood": "dry"},
    {"id": "e2", "npcSlug": "mr-bones", "pool": "greeting", "conditions": {"lowHealth": True},
     "text": "Running low on principal, are we?", "mood": "dry"},
    {"id": "e3", "npcSlug": "mr-bones", "pool": "greeting",
     "text": "The ledger never lies.", "mood": "neutral"},
    {"id": "d1", "npcSlug": "mr-bones", "pool": "default",
     "text": "*adjusts spectacles*", "mood": "cryptic"},
    {"id": "d2", "npcSlug": "mr-bones", "pool": "default",
     "text": "Every debt is settled eventually...", "mood": "neutral"},
    {"id": "s1", "npcSlug": "stitch-up-girl", "pool": "idle",
     "text": "*preps the needle*", "mood": "amused"},
]


@pytest.fixture
def sample_records() -> list[dict]:
    return json.loads(json.dumps(SAMPLE_RECORDS))


@pytest.fixture
def sample_index(sample_records):
    return build_index(sample_records)


@pytest.fixture
def preset_dataset() -> dict:
    return json.loads((PRESETS_DIR / "chatbase.json").read_text())


@pytest.fixture
async def loaded_engine(sample_records) -> ChatbaseEngine:
    engine = ChatbaseEngine(StaticSnapshotLoader(sample_records))
    await engine.initialize()
    return engine
