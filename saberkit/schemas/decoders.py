"""Decode community numeric encodings found in Beat Saber beatmaps.

Mapping Extensions overloads small integer fields with out-of-range values:

- grid coordinates (x, y, width, ...) at or beyond +/-1000 carry a position
  with 1/1000 precision;
- cut directions 1000-1360 carry a rotation in degrees;
- the v2 obstacle ``_type`` packs a wall's height and vertical start.

All functions here are pure. Only ``decode_cut_direction`` can fail.
"""

from typing import NamedTuple

from saberkit.errors import DirectionDecodeError

PRECISION_THRESHOLD = 1000

# Nominal cut directions, in game numbering.
UP = 0
DOWN = 1
LEFT = 2
RIGHT = 3
UP_LEFT = 4
UP_RIGHT = 5
DOWN_LEFT = 6
DOWN_RIGHT = 7
ANY = 8

ROTATION_BASE = 1000
ROTATION_MAX = 1360

# (exclusive upper edge, direction) in rotation order starting at 0 degrees.
_ROTATION_BUCKETS = (
    (1023, DOWN),
    (1068, DOWN_LEFT),
    (1113, LEFT),
    (1158, UP_LEFT),
    (1203, UP),
    (1248, UP_RIGHT),
    (1293, RIGHT),
    (1337, DOWN_RIGHT),
)

# Packed wall constants (Mapping Extensions); keep the exact values.
_WALL_PACKED_MIN = 4001
_WALL_PACKED_MAX = 410000
_WALL_UNIT = 1000.0
_WALL_START_DIVISOR = 750.0
_WALL_START_BASE = 1334.0
_WALL_SCALE = 5.0


class WallGeometry(NamedTuple):
    y: float
    height: float


FULL_WALL = WallGeometry(y=0.0, height=5.0)
CROUCH_WALL = WallGeometry(y=2.0, height=3.0)


def decode_precision(value: float) -> float:
    """Decode a precision-encoded grid coordinate.

    Values inside (-1000, 1000) are plain grid units and are returned as is.
    Larger magnitudes encode ``value / 1000`` shifted one unit toward zero,
    so 1000 is 0.0, 1500 is 0.5 and -2000 is -1.0.
    """
    if -PRECISION_THRESHOLD < value < PRECISION_THRESHOLD:
        return float(value)
    if value < 0:
        return value / 1000.0 + 1.0
    return value / 1000.0 - 1.0


def decode_cut_direction(value: int) -> int:
    """Resolve a nominal or rotation-encoded cut direction to 0-8.

    Raises:
        DirectionDecodeError: if ``value`` is in neither range.
    """
    if UP <= value <= ANY:
        return int(value)
    if ROTATION_BASE <= value <= ROTATION_MAX:
        for upper, direction in _ROTATION_BUCKETS:
            if value < upper:
                return direction
        # Last arc wraps around to Down.
        return DOWN
    raise DirectionDecodeError(value)


def decode_wall_geometry(wall_type: int) -> WallGeometry:
    """Unpack a v2 obstacle ``_type`` into vertical start and height.

    0 and 1 are the vanilla full-height and crouch walls. Anything else is
    a Mapping Extensions packed value: inside [4001, 410000] the thousands
    carry the height and the remainder the vertical start, otherwise
    ``value - 1000`` is a height with the wall on the floor offset.
    """
    if wall_type == 0:
        return FULL_WALL
    if wall_type == 1:
        return CROUCH_WALL

    packed = _WALL_PACKED_MIN <= wall_type <= _WALL_PACKED_MAX

    if packed:
        raw_height = (wall_type - _WALL_PACKED_MIN) // 1000
    else:
        raw_height = wall_type - 1000
    height = ((raw_height / _WALL_UNIT) * _WALL_SCALE) * _WALL_UNIT + _WALL_UNIT

    start = 0.0
    if packed:
        start = (wall_type - _WALL_PACKED_MIN) % 1000
    layer = ((start / _WALL_START_DIVISOR) * _WALL_SCALE) * _WALL_UNIT + _WALL_START_BASE

    return WallGeometry(
        y=layer / _WALL_UNIT - 2.0,
        height=(height - _WALL_UNIT) / _WALL_UNIT,
    )
