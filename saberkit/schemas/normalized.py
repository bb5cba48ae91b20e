"""Normalized Beat Saber map data format.

Dataclasses that represent a unified schema across all Beat Saber map versions
(v2, v3, v4). Every placed object carries its beat and the wall-clock time
resolved through the map's tempo changes. Colors and directions are unified
enums; coordinates are already decoded from any precision encoding.
"""

from dataclasses import dataclass, field
from enum import IntEnum


class NoteColor(IntEnum):
    RED = 0  # left saber
    BLUE = 1  # right saber


class NoteDirection(IntEnum):
    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3
    UP_LEFT = 4
    UP_RIGHT = 5
    DOWN_LEFT = 6
    DOWN_RIGHT = 7
    ANY = 8


@dataclass
class TempoChangeEvent:
    """A BPM change read from a beatmap, positioned in beats."""

    beat: float
    bpm: float


@dataclass
class ColorNote:
    """A single color note (red or blue saber)."""

    beat: float
    time: float  # seconds, from the tempo timeline
    x: float  # column, nominally 0-3
    y: float  # row, nominally 0-2
    color: NoteColor
    direction: NoteDirection
    angle_offset: float | None = None  # rotation degrees, when the file has one


@dataclass
class BombNote:
    """A bomb note that the player must avoid hitting."""

    beat: float
    time: float
    x: float
    y: float


@dataclass
class Obstacle:
    """A wall/obstacle the player must dodge."""

    beat: float
    time: float
    duration_beats: float
    duration: float  # seconds, end_time - time
    end_time: float
    x: float
    y: float
    width: float
    height: float  # v2: decoded from _type; v3/v4: explicit


@dataclass
class Chain:
    """A burst slider: a head note followed by slices up to the tail."""

    beat: float
    time: float
    x: float
    y: float
    color: NoteColor
    direction: NoteDirection
    tail_beat: float
    tail_time: float
    tail_x: float
    tail_y: float
    num_slices: int
    squish_factor: float


@dataclass
class Beatmap:
    """Unified objects of one difficulty, each list sorted by beat."""

    notes: list[ColorNote] = field(default_factory=list)
    bombs: list[BombNote] = field(default_factory=list)
    obstacles: list[Obstacle] = field(default_factory=list)
    chains: list[Chain] = field(default_factory=list)


@dataclass
class DifficultyInfo:
    """Metadata for one difficulty level of a beatmap."""

    characteristic: str  # "Standard", "OneSaber", "NoArrows", "360Degree", "90Degree", ...
    difficulty: str  # "Easy", "Normal", "Hard", "Expert", "ExpertPlus"
    difficulty_rank: int  # 1, 3, 5, 7, 9
    note_jump_speed: float
    note_jump_offset: float
    filename: str = ""
    note_count: int = 0  # filled after parsing
    bomb_count: int = 0
    obstacle_count: int = 0
    chain_count: int = 0
    nps: float | None = None  # notes per second


@dataclass
class SongMetadata:
    """Song-level metadata from the map info file."""

    source: str = ""  # "local", "archive", "beatsaver"
    source_id: str = ""  # folder name, archive name or BeatSaver ID
    hash: str = ""  # upper-case SHA-1 of Info.dat + difficulty files
    song_name: str = ""
    song_sub_name: str | None = None
    song_author: str = ""
    mapper_name: str = ""
    bpm: float = 0.0
    song_time_offset: float = 0.0
    song_filename: str = ""
    cover_image_filename: str = ""


@dataclass
class NormalizedBeatmap:
    """Complete parsed result for one difficulty of a Beat Saber map."""

    metadata: SongMetadata
    difficulty_info: DifficultyInfo
    beatmap: Beatmap = field(default_factory=Beatmap)
