"""Beat Saber v3 beatmap schema.

V3 maps use short single-letter keys (b, x, y, c, d, a) and separate arrays
for color notes, bomb notes, obstacles and burst sliders (chains). Tempo
changes live in bpmEvents, already expressed in beats.
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import Field

from saberkit.schemas.common import (
    DialectModel,
    ExtendedDirection,
    PrecisionCoordinate,
    validate_document,
)
from saberkit.schemas.normalized import TempoChangeEvent


class ColorType(IntEnum):
    RED = 0
    BLUE = 1


class ColorNote(DialectModel):
    beat: float = Field(alias="b")
    x: PrecisionCoordinate
    y: PrecisionCoordinate
    color: ColorType = Field(alias="c")
    direction: ExtendedDirection = Field(alias="d")
    angle_offset: float | None = Field(default=None, alias="a")


class BombNote(DialectModel):
    beat: float = Field(alias="b")
    x: PrecisionCoordinate
    y: PrecisionCoordinate


class Obstacle(DialectModel):
    beat: float = Field(alias="b")
    x: PrecisionCoordinate
    y: PrecisionCoordinate
    duration: float = Field(alias="d")
    width: PrecisionCoordinate = Field(alias="w")
    height: PrecisionCoordinate = Field(alias="h")


class BurstSlider(DialectModel):
    beat: float = Field(alias="b")
    x: PrecisionCoordinate
    y: PrecisionCoordinate
    color: ColorType = Field(alias="c")
    direction: ExtendedDirection = Field(alias="d")
    tail_beat: float = Field(alias="tb")
    tail_x: PrecisionCoordinate = Field(alias="tx")
    tail_y: PrecisionCoordinate = Field(alias="ty")
    num_slices: int = Field(alias="sc")
    squish_factor: float = Field(alias="s")


class BpmEvent(DialectModel):
    beat: float = Field(alias="b")
    bpm: float = Field(alias="m")


class Beatmap(DialectModel):
    version: str
    color_notes: list[ColorNote] = Field(default_factory=list, alias="colorNotes")
    bomb_notes: list[BombNote] = Field(default_factory=list, alias="bombNotes")
    obstacles: list[Obstacle] = Field(default_factory=list)
    burst_sliders: list[BurstSlider] = Field(default_factory=list, alias="burstSliders")
    bpm_events: list[BpmEvent] = Field(default_factory=list, alias="bpmEvents")

    def tempo_events(self) -> list[TempoChangeEvent]:
        return [TempoChangeEvent(beat=e.beat, bpm=e.bpm) for e in self.bpm_events]


def parse_v3_beatmap(data: dict) -> Beatmap:
    """Validate a v3 difficulty document.

    Raises:
        StructuralError: if a required field is missing or malformed.
        DirectionDecodeError: if a cut direction cannot be decoded.
    """
    return validate_document(Beatmap, data)
