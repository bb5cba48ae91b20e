"""Pieces shared by the dialect-specific beatmap models.

The ``Annotated`` field types run the numeric decoders while pydantic
validates a document, so every dialect model holds decoded values only.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError

from saberkit.errors import StructuralError
from saberkit.schemas.decoders import (
    WallGeometry,
    decode_cut_direction,
    decode_precision,
    decode_wall_geometry,
)


class CutDirection(IntEnum):
    """Cut direction as stored in v2/v3/v4 files after decoding."""

    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3
    UP_LEFT = 4
    UP_RIGHT = 5
    DOWN_LEFT = 6
    DOWN_RIGHT = 7
    ANY = 8


def _require_integer(value: Any) -> int:
    # JSON writers sometimes emit 1.0 for 1; fractional values are malformed.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("expected an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("expected an integer")
        return int(value)
    return value


def _precision(value: Any) -> float:
    return decode_precision(_require_integer(value))


def _direction(value: Any) -> int:
    return decode_cut_direction(_require_integer(value))


def _wall(value: Any) -> WallGeometry:
    return decode_wall_geometry(_require_integer(value))


PrecisionCoordinate = Annotated[float, BeforeValidator(_precision)]
ExtendedDirection = Annotated[CutDirection, BeforeValidator(_direction)]
PackedWall = Annotated[WallGeometry, BeforeValidator(_wall)]


class DialectModel(BaseModel):
    """Base for dialect models: keys are read by alias, unknown keys ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)


ModelT = TypeVar("ModelT", bound=BaseModel)


def _field_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "<root>"


def validate_document(model: type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` into ``model``, reporting the first bad field.

    Raises:
        StructuralError: naming the offending field path, e.g. ``_notes.3._time``.
    """
    if not isinstance(data, dict):
        raise StructuralError("<root>", "expected a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        raise StructuralError(_field_path(first["loc"]), first["msg"]) from exc
