"""Read and write BeatLeader .bsor replay files.

Layout (all little-endian):

    i32   magic 0x442D3D69
    u8    format version (1)
    u8    section id 0, then the info block
    u8    section id 1, i32 frame count, then fixed 92-byte frames

Strings are an i32 byte length followed by UTF-8. Only the info and frame
sections are decoded; any later sections (notes, walls, heights, pauses)
are ignored.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field, fields
from pathlib import Path

import numpy as np

from saberkit.errors import ReplayFormatError

MAGIC = 0x442D3D69
FORMAT_VERSION = 1
INFO_SECTION = 0
FRAMES_SECTION = 1

FRAME_DTYPE = np.dtype([
    ("time", "<f4"),
    ("fps", "<i4"),
    ("head_position", "<f4", (3,)),
    ("head_rotation", "<f4", (4,)),  # quaternion x, y, z, w
    ("left_position", "<f4", (3,)),
    ("left_rotation", "<f4", (4,)),
    ("right_position", "<f4", (3,)),
    ("right_rotation", "<f4", (4,)),
])


@dataclass
class ReplayInfo:
    version: str = ""
    game_version: str = ""
    timestamp: str = ""

    player_id: str = ""
    player_name: str = ""
    platform: str = ""

    tracking_system: str = ""
    hmd: str = ""
    controller: str = ""

    song_hash: str = ""
    song_name: str = ""
    mapper: str = ""
    difficulty: str = ""

    score: int = 0
    mode: str = ""
    environment: str = ""
    modifiers: list[str] = field(default_factory=list)
    jump_distance: float = 0.0
    left_handed: bool = False
    height: float = 0.0

    start_time: float = 0.0
    fail_time: float = 0.0
    speed: float = 0.0

    def is_same_map(self, other: ReplayInfo) -> bool:
        return (
            self.song_hash == other.song_hash
            and self.mode == other.mode
            and self.difficulty == other.difficulty
        )


# Field order and wire type of the info block.
_INFO_LAYOUT = {
    "score": "i32",
    "modifiers": "csv",
    "jump_distance": "f32",
    "left_handed": "bool",
    "height": "f32",
    "start_time": "f32",
    "fail_time": "f32",
    "speed": "f32",
}


@dataclass
class Replay:
    info: ReplayInfo
    frames: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=FRAME_DTYPE))

    @classmethod
    def from_file(cls, path: Path) -> Replay:
        return parse_replay(Path(path).read_bytes())

    def to_file(self, path: Path) -> None:
        Path(path).write_bytes(serialize_replay(self))


class _Reader:
    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def take(self, size: int) -> bytes:
        if size < 0 or self.pos + size > len(self.data):
            raise ReplayFormatError(
                f"unexpected end of replay at byte {self.pos} (wanted {size} bytes)"
            )
        chunk = self.data[self.pos:self.pos + size]
        self.pos += size
        return chunk

    def unpack(self, fmt: str):
        return struct.unpack("<" + fmt, self.take(struct.calcsize("<" + fmt)))[0]

    def byte(self) -> int:
        return self.unpack("B")

    def string(self) -> str:
        length = self.unpack("i")
        try:
            return self.take(length).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ReplayFormatError(f"invalid UTF-8 string at byte {self.pos}") from exc


def _expect(actual: int, expected: int, what: str) -> None:
    if actual != expected:
        raise ReplayFormatError(f"bad {what}: expected {expected:#x}, got {actual:#x}")


def _read_info(reader: _Reader) -> ReplayInfo:
    values = {}
    for f in fields(ReplayInfo):
        kind = _INFO_LAYOUT.get(f.name, "str")
        if kind == "str":
            values[f.name] = reader.string()
        elif kind == "csv":
            joined = reader.string()
            values[f.name] = joined.split(",") if joined else []
        elif kind == "i32":
            values[f.name] = reader.unpack("i")
        elif kind == "f32":
            values[f.name] = reader.unpack("f")
        else:
            values[f.name] = reader.byte() != 0
    return ReplayInfo(**values)


def parse_replay(data: bytes) -> Replay:
    """Decode replay bytes.

    Raises:
        ReplayFormatError: on a wrong magic/version/section id, truncated
            data or an invalid string.
    """
    reader = _Reader(data)
    _expect(reader.unpack("I"), MAGIC, "magic")
    _expect(reader.byte(), FORMAT_VERSION, "format version")
    _expect(reader.byte(), INFO_SECTION, "info section id")
    info = _read_info(reader)
    _expect(reader.byte(), FRAMES_SECTION, "frames section id")

    count = reader.unpack("i")
    raw = reader.take(count * FRAME_DTYPE.itemsize)
    if count == 0:
        return Replay(info=info, frames=make_frames(0))
    frames = np.frombuffer(raw, dtype=FRAME_DTYPE).copy()
    return Replay(info=info, frames=frames)


def _pack_string(value: str) -> bytes:
    encoded = value.encode("utf-8")
    return struct.pack("<i", len(encoded)) + encoded


def _write_info(info: ReplayInfo) -> bytes:
    out = bytearray()
    for f in fields(ReplayInfo):
        value = getattr(info, f.name)
        kind = _INFO_LAYOUT.get(f.name, "str")
        if kind == "str":
            out += _pack_string(value)
        elif kind == "csv":
            out += _pack_string(",".join(value))
        elif kind == "i32":
            out += struct.pack("<i", value)
        elif kind == "f32":
            out += struct.pack("<f", value)
        else:
            out += struct.pack("<B", 1 if value else 0)
    return bytes(out)


def serialize_replay(replay: Replay) -> bytes:
    """Encode a replay's info and frame sections."""
    frames = np.ascontiguousarray(replay.frames, dtype=FRAME_DTYPE)
    return b"".join([
        struct.pack("<IBB", MAGIC, FORMAT_VERSION, INFO_SECTION),
        _write_info(replay.info),
        struct.pack("<Bi", FRAMES_SECTION, len(frames)),
        frames.tobytes(),
    ])


def make_frames(count: int) -> np.ndarray:
    """An empty (zeroed) frame array of ``count`` frames."""
    return np.zeros(count, dtype=FRAME_DTYPE)
