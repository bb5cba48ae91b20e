"""Tests for Info.dat parsing, dat_reader, and beatmap_parser."""

import gzip
import hashlib
import io
import json
import zipfile
from pathlib import Path

import pytest

from saberkit.errors import BadDifficultyError, MissingResourceError, UnsupportedVersionError
from saberkit.parsers.beatmap_parser import parse_map_archive, parse_map_folder
from saberkit.parsers.dat_reader import decode_dat, read_dat_file
from saberkit.parsers.info_parser import (
    Characteristic,
    Difficulty,
    parse_characteristic,
    parse_info,
)
from saberkit.schemas.normalized import NoteDirection

FIXTURES = Path(__file__).parent / "fixtures"


def _minimal_info(filename="Easy.dat", difficulty="Easy"):
    return {
        "_version": "2.0.0",
        "_songName": "Minimal",
        "_songAuthorName": "",
        "_levelAuthorName": "",
        "_beatsPerMinute": 120.0,
        "_difficultyBeatmapSets": [{
            "_beatmapCharacteristicName": "Standard",
            "_difficultyBeatmaps": [{
                "_difficulty": difficulty,
                "_difficultyRank": 1,
                "_beatmapFilename": filename,
                "_noteJumpMovementSpeed": 10.0,
                "_noteJumpStartBeatOffset": 0.0,
            }],
        }],
    }


class TestDatReader:
    def test_read_json(self, tmp_path):
        dat = tmp_path / "test.dat"
        dat.write_text('{"_version": "2.0.0", "_notes": []}')
        result = read_dat_file(dat)
        assert result["_version"] == "2.0.0"

    def test_read_gzip(self, tmp_path):
        dat = tmp_path / "test.dat"
        content = json.dumps({"version": "4.0.0", "colorNotes": []}).encode()
        dat.write_bytes(gzip.compress(content))
        result = read_dat_file(dat)
        assert result["version"] == "4.0.0"

    def test_utf8_bom(self):
        assert decode_dat(b'\xef\xbb\xbf{"version": "3.0.0"}') == {"version": "3.0.0"}


class TestDifficulty:
    def test_from_name(self):
        assert Difficulty.from_name("Expert") is Difficulty.EXPERT
        assert Difficulty.from_name("Expert+") is Difficulty.EXPERT_PLUS
        assert Difficulty.from_name("ExpertPlus").rank == 9

    def test_bad_name(self):
        with pytest.raises(BadDifficultyError) as exc_info:
            Difficulty.from_name("Impossible")
        assert exc_info.value.name == "Impossible"
        assert "Impossible" in str(exc_info.value)

    def test_from_rank(self):
        assert Difficulty.from_rank(5).label == "Hard"
        assert Difficulty.from_rank(2) is None

    def test_characteristics(self):
        assert parse_characteristic("360Degree") is Characteristic.DEGREE_360
        assert parse_characteristic("CustomMode") == "CustomMode"


class TestInfoParser:
    def test_parse_v2_info(self):
        info_data = json.loads((FIXTURES / "v2_map" / "Info.dat").read_text())
        metadata, difficulties = parse_info(info_data, source="test", source_id="v2")
        assert metadata.song_name == "Test Song V2"
        assert metadata.song_sub_name is None
        assert metadata.bpm == 120.0
        assert metadata.mapper_name == "Test Mapper"
        assert metadata.song_filename == "song.egg"
        assert len(difficulties) == 2
        assert difficulties[0].difficulty == "Easy"
        assert difficulties[1].difficulty == "Expert"
        assert difficulties[1].difficulty_rank == 7
        assert difficulties[1].note_jump_offset == -0.5
        assert difficulties[0].filename == "Easy.dat"

    def test_parse_v4_info(self):
        info_data = json.loads((FIXTURES / "v4_map" / "Info.dat").read_text())
        metadata, difficulties = parse_info(info_data, source="test", source_id="v4")
        assert metadata.song_name == "Test Song V4"
        assert metadata.bpm == 150.0
        assert metadata.mapper_name == "TestMapperV4"
        assert len(difficulties) == 1
        assert difficulties[0].difficulty == "ExpertPlus"
        assert difficulties[0].filename == "ExpertPlus.dat"

    def test_bad_difficulty_fails_info(self):
        with pytest.raises(BadDifficultyError):
            parse_info(_minimal_info(difficulty="Extreme"))


class TestBeatmapParser:
    def test_parse_v2_map(self):
        info = parse_map_folder(FIXTURES / "v2_map", source="test", source_id="v2")
        assert len(info.beatmaps) == 2  # Easy + Expert
        assert info.failures == []

        easy = next(r for r in info.beatmaps if r.difficulty_info.difficulty == "Easy")
        assert easy.difficulty_info.note_count == 4  # 4 notes (1 bomb excluded)
        assert easy.difficulty_info.bomb_count == 1
        assert easy.difficulty_info.obstacle_count == 2
        assert easy.difficulty_info.nps == pytest.approx(2.0)
        assert easy.beatmap.notes[0].beat == 4.0
        assert easy.beatmap.notes[0].time == pytest.approx(2.0)
        assert easy.beatmap.notes[0].color == 0  # red
        extended = easy.beatmap.notes[2]
        assert extended.x == pytest.approx(0.5)
        assert extended.direction == NoteDirection.DOWN_LEFT

        expert = next(r for r in info.beatmaps if r.difficulty_info.difficulty == "Expert")
        assert expert.difficulty_info.note_count == 8
        wall = expert.beatmap.obstacles[0]
        assert wall.time == pytest.approx(1.0)
        assert wall.end_time == pytest.approx(3.5)

    def test_parse_v3_map(self):
        info = parse_map_folder(FIXTURES / "v3_map", source="test", source_id="v3")
        assert len(info.beatmaps) == 1

        hard = info.beatmaps[0]
        assert hard.difficulty_info.note_count == 4
        assert hard.difficulty_info.bomb_count == 2
        assert hard.difficulty_info.obstacle_count == 1
        assert hard.difficulty_info.chain_count == 1
        note_with_angle = next(n for n in hard.beatmap.notes if n.angle_offset)
        assert note_with_angle.angle_offset == 15

    def test_parse_v4_map(self):
        info = parse_map_folder(FIXTURES / "v4_map", source="test", source_id="v4")
        assert len(info.beatmaps) == 1

        ep = info.beatmaps[0]
        assert ep.difficulty_info.note_count == 4
        assert ep.difficulty_info.bomb_count == 1
        assert ep.difficulty_info.obstacle_count == 1
        assert ep.difficulty_info.chain_count == 1
        # v4 index deref: two notes reference colorNotesData[0]
        shared = [n for n in ep.beatmap.notes if n.x == 1 and n.y == 0 and n.color == 0]
        assert len(shared) == 2

    def test_cross_version_v2_info_v3_beatmap(self):
        """v2 Info.dat + v3 difficulty files is the common real-world layout."""
        info = parse_map_folder(FIXTURES / "v3_map", source="test", source_id="v3")
        assert info.metadata.bpm == 140.0
        assert info.metadata.song_sub_name == "Remix"
        assert info.beatmaps[0].difficulty_info.note_count == 4

    def test_content_hash(self):
        folder = FIXTURES / "v2_map"
        hasher = hashlib.sha1()
        for name in ("Info.dat", "Easy.dat", "Expert.dat"):
            hasher.update((folder / name).read_bytes())
        info = parse_map_folder(folder)
        assert info.hash == hasher.hexdigest().upper()
        assert all(bm.metadata.hash == info.hash for bm in info.beatmaps)

    def test_source_id_defaults_to_folder_name(self):
        info = parse_map_folder(FIXTURES / "v4_map")
        assert info.metadata.source == "local"
        assert info.metadata.source_id == "v4_map"

    def test_missing_info_dat(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_map_folder(tmp_path)

    def test_info_dat_case_insensitive(self, tmp_path):
        (tmp_path / "info.dat").write_text(json.dumps(_minimal_info()))
        (tmp_path / "easy.dat").write_text('{"_version": "2.0.0"}')
        info = parse_map_folder(tmp_path)
        assert len(info.beatmaps) == 1

    def test_missing_difficulty_file(self, tmp_path):
        (tmp_path / "Info.dat").write_text(json.dumps(_minimal_info("NonExistent.dat")))
        info = parse_map_folder(tmp_path)
        assert info.beatmaps == []  # Missing file is skipped, not an error
        assert len(info.failures) == 1
        assert isinstance(info.failures[0][1], MissingResourceError)
        assert info.hash == ""

    def test_missing_difficulty_file_strict(self, tmp_path):
        (tmp_path / "Info.dat").write_text(json.dumps(_minimal_info("NonExistent.dat")))
        with pytest.raises(FileNotFoundError):
            parse_map_folder(tmp_path, strict=True)

    def test_bad_difficulty_does_not_stop_siblings(self, tmp_path):
        info_data = _minimal_info()
        info_data["_difficultyBeatmapSets"][0]["_difficultyBeatmaps"].append({
            "_difficulty": "Hard",
            "_difficultyRank": 5,
            "_beatmapFilename": "Hard.dat",
        })
        (tmp_path / "Info.dat").write_text(json.dumps(info_data))
        (tmp_path / "Easy.dat").write_text('{"version": "9.0.0"}')
        (tmp_path / "Hard.dat").write_text('{"version": "3.0.0", "colorNotes": []}')

        info = parse_map_folder(tmp_path)
        assert [bm.difficulty_info.difficulty for bm in info.beatmaps] == ["Hard"]
        diff, exc = info.failures[0]
        assert diff.difficulty == "Easy"
        assert isinstance(exc, UnsupportedVersionError)

        with pytest.raises(UnsupportedVersionError):
            parse_map_folder(tmp_path, strict=True)


class TestMapArchive:
    def _zip(self, folder: Path, prefix: str = "") -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            for path in sorted(folder.iterdir()):
                zf.write(path, prefix + path.name)
        return buf.getvalue()

    def test_archive_matches_folder(self, tmp_path):
        archive = tmp_path / "v2.zip"
        archive.write_bytes(self._zip(FIXTURES / "v2_map"))
        from_zip = parse_map_archive(archive)
        from_folder = parse_map_folder(FIXTURES / "v2_map")
        assert from_zip.hash == from_folder.hash
        assert from_zip.metadata.source_id == "v2"
        assert [bm.beatmap for bm in from_zip.beatmaps] == [bm.beatmap for bm in from_folder.beatmaps]

    def test_archive_bytes_with_top_folder(self):
        info = parse_map_archive(self._zip(FIXTURES / "v3_map", prefix="Some Song/"))
        assert info.metadata.source == "archive"
        assert len(info.beatmaps) == 1
