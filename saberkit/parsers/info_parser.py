"""Parse Info.dat files from both v2 and v4 Beat Saber formats."""

from __future__ import annotations

from enum import Enum, IntEnum

from saberkit.errors import BadDifficultyError
from saberkit.schemas.detection import detect_info_version
from saberkit.schemas.normalized import DifficultyInfo, SongMetadata


class Difficulty(IntEnum):
    """Difficulty names with their Info.dat rank as value."""

    EASY = 1
    NORMAL = 3
    HARD = 5
    EXPERT = 7
    EXPERT_PLUS = 9

    @property
    def label(self) -> str:
        return _DIFFICULTY_LABELS[self]

    @property
    def rank(self) -> int:
        return int(self)

    @classmethod
    def from_name(cls, name: str) -> Difficulty:
        """Resolve "Easy" .. "ExpertPlus" (or "Expert+").

        Raises:
            BadDifficultyError: for any other name.
        """
        try:
            return _DIFFICULTY_NAMES[name]
        except KeyError:
            raise BadDifficultyError(name) from None

    @classmethod
    def from_rank(cls, rank: int) -> Difficulty | None:
        try:
            return cls(rank)
        except ValueError:
            return None


_DIFFICULTY_LABELS = {
    Difficulty.EASY: "Easy",
    Difficulty.NORMAL: "Normal",
    Difficulty.HARD: "Hard",
    Difficulty.EXPERT: "Expert",
    Difficulty.EXPERT_PLUS: "ExpertPlus",
}

_DIFFICULTY_NAMES = {label: diff for diff, label in _DIFFICULTY_LABELS.items()}
_DIFFICULTY_NAMES["Expert+"] = Difficulty.EXPERT_PLUS


class Characteristic(str, Enum):
    STANDARD = "Standard"
    NO_ARROWS = "NoArrows"
    ONE_SABER = "OneSaber"
    DEGREE_360 = "360Degree"
    DEGREE_90 = "90Degree"
    LEGACY = "Legacy"
    LIGHTSHOW = "Lightshow"
    LAWLESS = "Lawless"


def parse_characteristic(name: str) -> Characteristic | str:
    """Known characteristics become enum members; custom ones stay strings."""
    try:
        return Characteristic(name)
    except ValueError:
        return name


def _characteristic_name(name: str) -> str:
    characteristic = parse_characteristic(name)
    return characteristic.value if isinstance(characteristic, Characteristic) else characteristic


def parse_info(
    info_data: dict, source: str = "", source_id: str = ""
) -> tuple[SongMetadata, list[DifficultyInfo]]:
    """Parse Info.dat content.

    Returns (SongMetadata, list of DifficultyInfo in declared order). Each
    DifficultyInfo carries the beatmap filename it refers to.

    Raises:
        BadDifficultyError: if a difficulty name is not recognized.
    """
    if detect_info_version(info_data) == "4":
        return _parse_v4(info_data, source, source_id)
    return _parse_v2(info_data, source, source_id)


def _parse_v2(
    data: dict, source: str, source_id: str
) -> tuple[SongMetadata, list[DifficultyInfo]]:
    metadata = SongMetadata(
        source=source,
        source_id=source_id,
        song_name=data.get("_songName", ""),
        song_sub_name=data.get("_songSubName") or None,
        song_author=data.get("_songAuthorName", ""),
        mapper_name=data.get("_levelAuthorName", ""),
        bpm=float(data.get("_beatsPerMinute", 0.0)),
        song_time_offset=float(data.get("_songTimeOffset", 0.0)),
        song_filename=data.get("_songFilename", ""),
        cover_image_filename=data.get("_coverImageFilename", ""),
    )

    difficulties: list[DifficultyInfo] = []

    for bset in data.get("_difficultyBeatmapSets", []):
        characteristic = _characteristic_name(bset.get("_beatmapCharacteristicName", "Standard"))

        for bmap in bset.get("_difficultyBeatmaps", []):
            difficulty = Difficulty.from_name(bmap.get("_difficulty", ""))
            difficulties.append(DifficultyInfo(
                characteristic=characteristic,
                difficulty=difficulty.label,
                difficulty_rank=difficulty.rank,
                note_jump_speed=float(bmap.get("_noteJumpMovementSpeed", 0.0)),
                note_jump_offset=float(bmap.get("_noteJumpStartBeatOffset", 0.0)),
                filename=bmap.get("_beatmapFilename", ""),
            ))

    return metadata, difficulties


def _parse_v4(
    data: dict, source: str, source_id: str
) -> tuple[SongMetadata, list[DifficultyInfo]]:
    song = data.get("song", {})
    audio = data.get("audio", {})

    metadata = SongMetadata(
        source=source,
        source_id=source_id,
        song_name=song.get("title", ""),
        song_sub_name=song.get("subTitle") or None,
        song_author=song.get("author", ""),
        mapper_name="",
        bpm=float(audio.get("bpm", 0.0)),
        song_filename=audio.get("songFilename", ""),
        cover_image_filename=data.get("coverImageFilename", ""),
    )

    difficulties: list[DifficultyInfo] = []

    for bmap in data.get("difficultyBeatmaps", []):
        difficulty = Difficulty.from_name(bmap.get("difficulty", ""))

        # Extract mapper name from first entry if available
        authors = bmap.get("beatmapAuthors", {})
        mappers = authors.get("mappers", [])
        if mappers and not metadata.mapper_name:
            metadata.mapper_name = mappers[0]

        difficulties.append(DifficultyInfo(
            characteristic=_characteristic_name(bmap.get("characteristic", "Standard")),
            difficulty=difficulty.label,
            difficulty_rank=difficulty.rank,
            note_jump_speed=float(bmap.get("noteJumpMovementSpeed", 0.0)),
            note_jump_offset=float(bmap.get("noteJumpStartBeatOffset", 0.0)),
            filename=bmap.get("beatmapDataFilename", ""),
        ))

    return metadata, difficulties
