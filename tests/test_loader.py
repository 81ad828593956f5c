"""Tests for npc_chatbase.loader — file, HTTP, and static snapshot loaders."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from npc_chatbase.errors import SnapshotLoadError
from npc_chatbase.index import build_index
from npc_chatbase.loader import FileSnapshotLoader, HttpSnapshotLoader, StaticSnapshotLoader


# ---------------------------------------------------------------------------
# StaticSnapshotLoader
# ---------------------------------------------------------------------------

class TestStaticSnapshotLoader:
    async def test_returns_data_unchanged(self, sample_records) -> None:
        loader = StaticSnapshotLoader(sample_records)
        assert await loader() is sample_records


# ---------------------------------------------------------------------------
# FileSnapshotLoader
# ---------------------------------------------------------------------------

class TestFileSnapshotLoader:
    async def test_reads_json_file(self, tmp_path: Path, sample_records) -> None:
        path = tmp_path / "chatbase.json"
        path.write_text(json.dumps(sample_records))
        assert await FileSnapshotLoader(path)() == sample_records

    async def test_accepts_str_path(self, tmp_path: Path) -> None:
        path = tmp_path / "chatbase.json"
        path.write_text("[]")
        assert await FileSnapshotLoader(str(path))() == []

    async def test_reads_chatbase_directory_in_name_order(self, tmp_path: Path) -> None:
        npcs = tmp_path / "npcs"
        npcs.mkdir()
        (tmp_path / "manifest.json").write_text("{}")
        for slug in ("stitch-up-girl", "boots"):
            (npcs / f"{slug}.json").write_text(json.dumps({
                "npc": {"slug": slug},
                "entries": [{"id": f"{slug}-1", "pool": "idle", "text": "Hi.", "mood": "neutral"}],
            }))
        data = await FileSnapshotLoader(tmp_path)()
        assert [f["npc"]["slug"] for f in data["npcs"]] == ["boots", "stitch-up-girl"]
        assert build_index(data).npcs == frozenset({"boots", "stitch-up-girl"})

    async def test_unreadable_npc_file_skipped(self, tmp_path: Path) -> None:
        npcs = tmp_path / "npcs"
        npcs.mkdir()
        (npcs / "a.json").write_text(json.dumps({
            "npc": {"slug": "a"},
            "entries": [{"id": "a-1", "pool": "idle", "text": "Hi.", "mood": "neutral"}],
        }))
        (npcs / "b.json").write_text("{not json")
        (npcs / "c.json").write_text(json.dumps({"npc": {"slug": "c"}}))
        data = await FileSnapshotLoader(tmp_path)()
        assert data["npcs"][1] is None
        index = build_index(data)
        assert index.npcs == frozenset({"a"})
        assert index.skipped == 2

    async def test_directory_without_npcs_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SnapshotLoadError, match="No npcs/ directory"):
            await FileSnapshotLoader(tmp_path)()

    async def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SnapshotLoadError, match="not found"):
            await FileSnapshotLoader(tmp_path / "missing.json")()

    async def test_invalid_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(SnapshotLoadError, match="not valid JSON"):
            await FileSnapshotLoader(path)()

    async def test_preset_dataset_loads(self) -> None:
        preset = Path(__file__).parent.parent / "presets" / "chatbase.json"
        data = await FileSnapshotLoader(preset)()
        assert "npcs" in data


# ---------------------------------------------------------------------------
# HttpSnapshotLoader
# ---------------------------------------------------------------------------

def _mock_response(body, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


class TestHttpSnapshotLoader:
    @pytest.fixture
    def loader(self) -> HttpSnapshotLoader:
        return HttpSnapshotLoader(url="https://cdn.example.com/chatbase.json")

    async def test_happy_path(self, loader: HttpSnapshotLoader, sample_records) -> None:
        mock_get = AsyncMock(return_value=_mock_response({"entries": sample_records}))
        with patch("httpx.AsyncClient.get", mock_get):
            data = await loader()
        assert data == {"entries": sample_records}

    async def test_gets_configured_url(self, loader: HttpSnapshotLoader) -> None:
        mock_get = AsyncMock(return_value=_mock_response([]))
        with patch("httpx.AsyncClient.get", mock_get):
            await loader()
        assert mock_get.call_args[0][0] == "https://cdn.example.com/chatbase.json"

    async def test_bearer_token_sent_when_api_key_set(self) -> None:
        loader = HttpSnapshotLoader(url="https://kv.example.com/chatbase", api_key="secret")
        mock_get = AsyncMock(return_value=_mock_response([]))
        with patch("httpx.AsyncClient.get", mock_get):
            await loader()
        headers = mock_get.call_args.kwargs["headers"]
        assert headers.get("Authorization") == "Bearer secret"

    async def test_no_auth_header_when_no_api_key(self, loader: HttpSnapshotLoader) -> None:
        mock_get = AsyncMock(return_value=_mock_response([]))
        with patch("httpx.AsyncClient.get", mock_get):
            await loader()
        assert "Authorization" not in mock_get.call_args.kwargs["headers"]

    async def test_connect_error_raises(self, loader: HttpSnapshotLoader) -> None:
        mock_get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(SnapshotLoadError, match="Cannot connect"):
                await loader()

    async def test_timeout_raises(self, loader: HttpSnapshotLoader) -> None:
        mock_get = AsyncMock(side_effect=httpx.TimeoutException("timeout"))
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(SnapshotLoadError, match="timed out"):
                await loader()

    async def test_http_error_raises(self, loader: HttpSnapshotLoader) -> None:
        mock_get = AsyncMock(return_value=_mock_response({}, status=503))
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(SnapshotLoadError, match="HTTP 503"):
                await loader()

    async def test_non_json_body_raises(self, loader: HttpSnapshotLoader) -> None:
        resp = _mock_response(None)
        resp.json.side_effect = ValueError("no json")
        mock_get = AsyncMock(return_value=resp)
        with patch("httpx.AsyncClient.get", mock_get):
            with pytest.raises(SnapshotLoadError, match="not valid JSON"):
                await loader()
