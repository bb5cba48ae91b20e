"""Tests for folder and zip map storage."""

import io
import zipfile

import pytest

from saberkit.errors import MissingResourceError
from saberkit.storage.filesystem import DirectoryStorage, ZipStorage, open_storage


def _zip_bytes(members: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buf.getvalue()


class TestDirectoryStorage:
    def test_list_and_read(self, tmp_path):
        (tmp_path / "Info.dat").write_bytes(b"{}")
        (tmp_path / "Expert.dat").write_bytes(b"[]")
        (tmp_path / "sub").mkdir()
        storage = DirectoryStorage(tmp_path)
        assert storage.list() == ["Expert.dat", "Info.dat"]
        assert storage.read("Expert.dat") == b"[]"

    def test_case_insensitive(self, tmp_path):
        (tmp_path / "info.DAT").write_bytes(b"{}")
        storage = DirectoryStorage(tmp_path)
        assert storage.resolve("Info.dat") == "info.DAT"
        assert storage.read("INFO.dat") == b"{}"

    def test_missing(self, tmp_path):
        storage = DirectoryStorage(tmp_path)
        with pytest.raises(MissingResourceError) as exc_info:
            storage.read("Info.dat")
        assert isinstance(exc_info.value, FileNotFoundError)
        assert "Info.dat" in str(exc_info.value)


class TestZipStorage:
    def test_flat_archive(self):
        storage = ZipStorage(_zip_bytes({"Info.dat": b"{}", "Hard.dat": b"1"}))
        assert storage.list() == ["Hard.dat", "Info.dat"]
        assert storage.read("hard.dat") == b"1"

    def test_single_top_folder_is_stripped(self):
        data = _zip_bytes({"My Song/Info.dat": b"{}", "My Song/Easy.dat": b"2"})
        with ZipStorage(data, name="download") as storage:
            assert storage.list() == ["Easy.dat", "Info.dat"]
            assert storage.read("Easy.dat") == b"2"
            assert storage.description == "download"

    def test_mixed_layout_kept(self):
        storage = ZipStorage(_zip_bytes({"Info.dat": b"{}", "extra/cover.jpg": b""}))
        assert "extra/cover.jpg" in storage.list()

    def test_missing_member(self):
        storage = ZipStorage(_zip_bytes({"Info.dat": b"{}"}))
        with pytest.raises(MissingResourceError):
            storage.read("Expert.dat")

    def test_not_a_zip(self):
        with pytest.raises(zipfile.BadZipFile):
            ZipStorage(b"definitely not a zip")


class TestOpenStorage:
    def test_picks_by_path(self, tmp_path):
        assert isinstance(open_storage(tmp_path), DirectoryStorage)
        archive = tmp_path / "map.ZIP"
        archive.write_bytes(_zip_bytes({"Info.dat": b"{}"}))
        storage = open_storage(archive)
        assert isinstance(storage, ZipStorage)
        storage.close()

    def test_rejects_other_files(self, tmp_path):
        other = tmp_path / "song.ogg"
        other.write_bytes(b"")
        with pytest.raises(MissingResourceError):
            open_storage(other)
