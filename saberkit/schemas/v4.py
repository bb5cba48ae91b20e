"""Beat Saber v4 beatmap schema.

V4 maps use an index-based dereferencing pattern: note/bomb/obstacle/chain
arrays contain beat timing and an index into separate data arrays that hold
the position, color, and direction information. Several entries may share
one data record. Tempo lives in a separate audio file, so a v4 beatmap
carries no tempo events.
"""

from __future__ import annotations

from pydantic import Field

from saberkit.errors import StructuralError
from saberkit.schemas.common import (
    DialectModel,
    ExtendedDirection,
    PrecisionCoordinate,
    validate_document,
)
from saberkit.schemas.normalized import TempoChangeEvent
from saberkit.schemas.v3 import ColorType


class TimedRef(DialectModel):
    beat: float = Field(alias="b")
    rotation_lane: int = Field(default=0, alias="r")
    index: int = Field(alias="i")


class ChainRef(DialectModel):
    beat: float = Field(alias="hb")
    tail_beat: float = Field(alias="tb")
    index: int = Field(alias="i")
    chain_index: int = Field(alias="ci")


class ColorNoteData(DialectModel):
    x: PrecisionCoordinate
    y: PrecisionCoordinate
    color: ColorType = Field(alias="c")
    direction: ExtendedDirection = Field(alias="d")
    angle_offset: float | None = Field(default=None, alias="a")


class BombNoteData(DialectModel):
    x: PrecisionCoordinate
    y: PrecisionCoordinate


class ObstacleData(DialectModel):
    duration: float = Field(alias="d")
    x: PrecisionCoordinate
    y: PrecisionCoordinate = 0.0
    width: PrecisionCoordinate = Field(alias="w")
    height: PrecisionCoordinate = Field(default=5.0, alias="h")


class ChainData(DialectModel):
    tail_x: PrecisionCoordinate = Field(alias="tx")
    tail_y: PrecisionCoordinate = Field(alias="ty")
    num_slices: int = Field(alias="c")
    squish_factor: float = Field(alias="s")


def _check_indices(refs: list, attr: str, key: str, collection: str, size: int) -> None:
    for pos, ref in enumerate(refs):
        idx = getattr(ref, attr)
        if idx < 0 or idx >= size:
            raise StructuralError(
                f"{collection}.{pos}.{key}",
                f"index {idx} out of range for {size} data entries",
            )


class Beatmap(DialectModel):
    version: str
    color_notes: list[TimedRef] = Field(default_factory=list, alias="colorNotes")
    color_notes_data: list[ColorNoteData] = Field(default_factory=list, alias="colorNotesData")
    bomb_notes: list[TimedRef] = Field(default_factory=list, alias="bombNotes")
    bomb_notes_data: list[BombNoteData] = Field(default_factory=list, alias="bombNotesData")
    obstacles: list[TimedRef] = Field(default_factory=list)
    obstacles_data: list[ObstacleData] = Field(default_factory=list, alias="obstaclesData")
    chains: list[ChainRef] = Field(default_factory=list)
    chains_data: list[ChainData] = Field(default_factory=list, alias="chainsData")

    def tempo_events(self) -> list[TempoChangeEvent]:
        return []


def parse_v4_beatmap(data: dict) -> Beatmap:
    """Validate a v4 difficulty document, including its data indices.

    Raises:
        StructuralError: if a field is missing or malformed, or an index
            points outside its data array.
        DirectionDecodeError: if a cut direction cannot be decoded.
    """
    beatmap = validate_document(Beatmap, data)
    notes_data = len(beatmap.color_notes_data)
    _check_indices(beatmap.color_notes, "index", "i", "colorNotes", notes_data)
    _check_indices(beatmap.bomb_notes, "index", "i", "bombNotes", len(beatmap.bomb_notes_data))
    _check_indices(beatmap.obstacles, "index", "i", "obstacles", len(beatmap.obstacles_data))
    _check_indices(beatmap.chains, "index", "i", "chains", notes_data)
    _check_indices(beatmap.chains, "chain_index", "ci", "chains", len(beatmap.chains_data))
    return beatmap
