"""Process individual map folders and archives into normalized data."""

import logging
from pathlib import Path

from saberkit.parsers.beatmap_parser import MapInfo, parse_map
from saberkit.storage.filesystem import ZipStorage, open_storage

logger = logging.getLogger(__name__)


def detect_source(map_path: Path, input_root: Path) -> str:
    """Detect map source from its path relative to the input root."""
    try:
        rel = map_path.relative_to(input_root)
        parts = [p.lower() for p in rel.parts]
    except ValueError:
        parts = []
    if "beatsaver" in parts:
        return "beatsaver"
    if map_path.suffix.lower() == ".zip":
        return "archive"
    return "local"


def process_map(
    path: Path, source: str = "local", source_id: str = "", strict: bool = False
) -> MapInfo:
    """Parse one map folder or .zip into a MapInfo.

    Raises:
        MissingResourceError: if the path is neither a folder nor a zip, or
            holds no Info.dat.
    """
    path = Path(path)
    storage = open_storage(path)
    if not source_id:
        source_id = path.stem if isinstance(storage, ZipStorage) else path.name
    try:
        info = parse_map(storage, source=source, source_id=source_id, strict=strict)
    finally:
        if isinstance(storage, ZipStorage):
            storage.close()
    logger.debug(
        "Parsed %s: %d difficulties, %d failed", path, len(info.beatmaps), len(info.failures),
    )
    return info
