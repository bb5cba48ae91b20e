"""Detect Beat Saber map schema versions and route documents to their adapter.

Detection reads the version marker only (``_version`` for v2, ``version``
for v3/v4); field shapes differ between dialects, so nothing else is
inspected before the adapter is chosen.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Union

from saberkit.errors import UnsupportedVersionError
from saberkit.parsers.dat_reader import decode_dat
from saberkit.schemas import v2, v3, v4

logger = logging.getLogger(__name__)

BeatmapDocument = Union[v2.Beatmap, v3.Beatmap, v4.Beatmap]

_ADAPTERS: dict[str, Callable[[dict], BeatmapDocument]] = {
    "2": v2.parse_v2_beatmap,
    "3": v3.parse_v3_beatmap,
    "4": v4.parse_v4_beatmap,
}


def find_version_marker(data: dict) -> str | None:
    """Return the literal version string of a document, if it has one."""
    for key in ("_version", "version"):
        if key in data and data[key] is not None:
            return str(data[key])
    return None


class BeatmapDispatcher:
    """Selects the schema adapter for a beatmap document.

    Holds its own compiled version pattern; instances share no state, so one
    may be used per thread or per document.
    """

    def __init__(self, adapters: dict[str, Callable[[dict], BeatmapDocument]] | None = None):
        self._adapters = dict(adapters or _ADAPTERS)
        self._major_pattern = re.compile(r"^\s*(\d+)(?:\.|\s*$)")

    def major_version(self, version: str) -> str | None:
        match = self._major_pattern.match(version)
        return match.group(1) if match else None

    def detect(self, data: dict) -> str:
        """Return the adapter key ("2", "3" or "4") for a decoded document.

        Raises:
            UnsupportedVersionError: with the literal version string, or
                "unknown" if the document has no version marker.
        """
        version = find_version_marker(data)
        if version is None:
            raise UnsupportedVersionError("unknown")
        major = self.major_version(version)
        if major not in self._adapters:
            raise UnsupportedVersionError(version)
        return major

    def dispatch(self, document: dict | str | bytes) -> BeatmapDocument:
        """Decode (if needed) and adapt a beatmap into its dialect model."""
        data: Any = document
        if isinstance(document, (str, bytes)):
            data = decode_dat(document)
        if not isinstance(data, dict):
            raise UnsupportedVersionError("unknown")
        major = self.detect(data)
        logger.debug("Routing beatmap version %s to v%s adapter", find_version_marker(data), major)
        return self._adapters[major](data)


def detect_info_version(info_data: dict) -> str:
    """Detect the schema version of a Beat Saber info.dat file.

    Args:
        info_data: Parsed JSON dict from info.dat / Info.dat.

    Returns:
        Version string: "2", "3", or "4".
    """
    if "_version" in info_data:
        return "2"

    version_str = info_data.get("version", "")
    if version_str:
        try:
            major = int(str(version_str).split(".")[0])
            if major >= 4:
                return "4"
            else:
                return "3"
        except (ValueError, IndexError):
            pass

    return "2"


def detect_beatmap_version(beatmap_data: dict) -> str:
    """Detect the schema version of a Beat Saber beatmap file.

    Args:
        beatmap_data: Parsed JSON dict from a difficulty beatmap file.

    Returns:
        Version string: "2", "3", or "4".

    Raises:
        UnsupportedVersionError: If the version marker is missing or unknown.
    """
    return BeatmapDispatcher().detect(beatmap_data)


def dispatch(document: dict | str | bytes) -> BeatmapDocument:
    """Adapt a beatmap document with a fresh dispatcher."""
    return BeatmapDispatcher().dispatch(document)
