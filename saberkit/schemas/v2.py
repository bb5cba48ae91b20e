"""Beat Saber v2 beatmap schema.

V2 maps use underscore-prefixed keys (_notes, _obstacles, _events) and store
notes and bombs together in a single _notes array differentiated by _type.
Obstacles have no explicit height; their _type is either a vanilla wall kind
or a Mapping Extensions packed height/start value.
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import AliasChoices, Field

from saberkit.schemas.common import (
    DialectModel,
    ExtendedDirection,
    PackedWall,
    PrecisionCoordinate,
    validate_document,
)
from saberkit.schemas.normalized import TempoChangeEvent

# _events entry type that changes the tempo; _floatValue holds the new BPM.
BPM_CHANGE_EVENT_TYPE = 100


class NoteType(IntEnum):
    RED = 0
    BLUE = 1
    BOMB = 3


class Note(DialectModel):
    beat: float = Field(alias="_time")
    x: PrecisionCoordinate = Field(alias="_lineIndex")
    y: PrecisionCoordinate = Field(alias="_lineLayer")
    note_type: NoteType = Field(alias="_type")
    direction: ExtendedDirection = Field(alias="_cutDirection")
    angle_offset: float | None = Field(default=None, alias="_angleOffset")


class Obstacle(DialectModel):
    beat: float = Field(alias="_time")
    x: PrecisionCoordinate = Field(alias="_lineIndex")
    geometry: PackedWall = Field(alias="_type")
    duration: float = Field(alias="_duration")
    width: PrecisionCoordinate = Field(alias="_width")


class Event(DialectModel):
    beat: float = Field(alias="_time")
    event_type: int = Field(alias="_type")
    value: int = Field(default=0, alias="_value")
    float_value: float | None = Field(default=None, alias="_floatValue")


class Beatmap(DialectModel):
    # Some editors write the plain "version" key in v2 files.
    version: str = Field(validation_alias=AliasChoices("_version", "version"))
    notes: list[Note] = Field(default_factory=list, alias="_notes")
    obstacles: list[Obstacle] = Field(default_factory=list, alias="_obstacles")
    events: list[Event] = Field(default_factory=list, alias="_events")

    def tempo_events(self) -> list[TempoChangeEvent]:
        """BPM changes carried in _events, in file order."""
        return [
            TempoChangeEvent(beat=event.beat, bpm=event.float_value)
            for event in self.events
            if event.event_type == BPM_CHANGE_EVENT_TYPE and event.float_value is not None
        ]


def parse_v2_beatmap(data: dict) -> Beatmap:
    """Validate a v2 difficulty document.

    Args:
        data: Parsed JSON dict of a v2 difficulty file.

    Returns:
        The decoded v2 beatmap.

    Raises:
        StructuralError: if a required field is missing or malformed.
        DirectionDecodeError: if a cut direction cannot be decoded.
    """
    return validate_document(Beatmap, data)
