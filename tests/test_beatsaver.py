"""Tests for the BeatSaver download client (HTTP mocked)."""

import io
import threading
import zipfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from saberkit.parsers.beatmap_parser import parse_map_archive
from saberkit.sources.beatsaver import BeatSaverClient

FIXTURES = Path(__file__).parent / "fixtures"


def _map_doc(map_id: str, map_hash: str, url: str = "/abc.zip") -> dict:
    return {
        "id": map_id,
        "name": f"Map {map_id}",
        "versions": [{"hash": map_hash, "downloadURL": url}],
    }


def _response(json_data=None, content=b"", status=200):
    response = MagicMock()
    response.json.return_value = json_data
    response.content = content
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status}")
    else:
        response.raise_for_status.return_value = None
    return response


def _fixture_zip(name: str) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for path in sorted((FIXTURES / name).iterdir()):
            zf.write(path, path.name)
    return buf.getvalue()


class TestGetMap:
    def test_requests_map_by_id(self):
        client = BeatSaverClient()
        with patch.object(client.session, "get", return_value=_response(_map_doc("1a2b", "ff"))) as get:
            doc = client.get_map("1a2b")
        get.assert_called_once_with("https://api.beatsaver.com/maps/id/1a2b")
        assert doc["versions"][0]["hash"] == "ff"

    def test_http_error_propagates(self):
        client = BeatSaverClient()
        with patch.object(client.session, "get", return_value=_response(status=404)):
            with pytest.raises(requests.HTTPError):
                client.get_map("missing")

    def test_user_agent(self):
        assert BeatSaverClient().session.headers["User-Agent"].startswith("saberkit/")


class TestDownload:
    def test_download_archive_resolves_relative_url(self):
        client = BeatSaverClient()
        with patch.object(client.session, "get", return_value=_response(_map_doc("1", "aa"))), \
                patch("saberkit.sources.beatsaver.requests.get",
                      return_value=_response(content=b"zipbytes")) as get:
            assert client.download_archive("1") == b"zipbytes"
        assert get.call_args[0][0] == "https://beatsaver.com/abc.zip"

    def test_no_versions(self):
        client = BeatSaverClient()
        with patch.object(client.session, "get", return_value=_response({"id": "1", "versions": []})):
            with pytest.raises(ValueError):
                client.download_archive("1")

    def test_download_maps_saves_by_hash(self, tmp_path):
        client = BeatSaverClient()
        docs = {
            "https://api.beatsaver.com/maps/id/a": _response(_map_doc("a", "abc123")),
            "https://api.beatsaver.com/maps/id/b": _response(status=404),
        }
        archive = _fixture_zip("v2_map")
        with patch.object(client.session, "get", side_effect=lambda url: docs[url]), \
                patch("saberkit.sources.beatsaver.time.sleep"), \
                patch("saberkit.sources.beatsaver.requests.get",
                      return_value=_response(content=archive)):
            paths = client.download_maps(["a", "b"], tmp_path / "dl", workers=2)

        assert [p.name for p in paths] == ["ABC123.zip"]
        info = parse_map_archive(paths[0], source="beatsaver")
        assert info.metadata.song_name == "Test Song V2"

    def test_existing_archive_skipped(self, tmp_path):
        client = BeatSaverClient()
        (tmp_path / "ABC123.zip").write_bytes(b"already here")
        with patch.object(client.session, "get", return_value=_response(_map_doc("a", "abc123"))), \
                patch("saberkit.sources.beatsaver.requests.get") as fetch:
            paths = client.download_maps(["a"], tmp_path)
        fetch.assert_not_called()
        assert paths == [tmp_path / "ABC123.zip"]

    def test_lookups_are_sequential_and_delayed(self, tmp_path):
        client = BeatSaverClient()
        lookup_threads = []

        def lookup(url):
            lookup_threads.append(threading.current_thread())
            map_id = url.rsplit("/", 1)[-1]
            return _response(_map_doc(map_id, f"{map_id}{map_id}", url=f"/{map_id}.zip"))

        with patch.object(client.session, "get", side_effect=lookup), \
                patch("saberkit.sources.beatsaver.time.sleep") as sleep, \
                patch("saberkit.sources.beatsaver.requests.get",
                      return_value=_response(content=b"zipbytes")):
            paths = client.download_maps(["a", "b", "c"], tmp_path, workers=3)

        assert len(paths) == 3
        assert lookup_threads == [threading.main_thread()] * 3
        assert sleep.call_count == 2
        sleep.assert_called_with(1.0)

    def test_failed_fetch_leaves_no_file(self, tmp_path):
        client = BeatSaverClient()
        with patch.object(client.session, "get", return_value=_response(_map_doc("a", "abc123"))), \
                patch("saberkit.sources.beatsaver.requests.get",
                      return_value=_response(status=500)):
            paths = client.download_maps(["a"], tmp_path)
        assert paths == []
        assert list(tmp_path.iterdir()) == []

    def test_failed_write_removes_partial_file(self, tmp_path):
        client = BeatSaverClient()
        with patch.object(client.session, "get", return_value=_response(_map_doc("a", "abc123"))), \
                patch("saberkit.sources.beatsaver.requests.get",
                      return_value=_response(content=b"zipbytes")), \
                patch.object(Path, "replace", side_effect=OSError("disk full")):
            assert client.download_map("a", tmp_path) is None
        assert list(tmp_path.iterdir()) == []
