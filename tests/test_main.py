"""Tests for the launcher's offline dataset check."""

from pathlib import Path

from main import check_dataset

PRESET = Path(__file__).parent.parent / "presets" / "chatbase.json"


def test_check_preset_dataset(capsys):
    assert check_dataset(PRESET) == 0
    out = capsys.readouterr().out
    assert "mr-bones: default(2), greeting(4), threat(1)" in out
    assert "3 NPCs, 13 entries, 0 skipped" in out


def test_check_missing_dataset(tmp_path, capsys):
    assert check_dataset(tmp_path / "missing.json") == 1
    assert "Dataset failed to load" in capsys.readouterr().err
