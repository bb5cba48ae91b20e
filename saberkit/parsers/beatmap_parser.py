"""Top-level orchestrator: parse an entire map into normalized beatmaps."""

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path

from saberkit.errors import SaberkitError
from saberkit.parsers.dat_reader import decode_dat
from saberkit.parsers.info_parser import parse_info
from saberkit.parsers.normalizer import normalize_beatmap
from saberkit.schemas.detection import BeatmapDispatcher
from saberkit.schemas.normalized import DifficultyInfo, NormalizedBeatmap, SongMetadata
from saberkit.storage.filesystem import DirectoryStorage, MapStorage, ZipStorage

logger = logging.getLogger(__name__)

INFO_FILENAME = "Info.dat"


@dataclass
class MapInfo:
    """A whole map: song metadata, content hash and its parsed difficulties."""

    metadata: SongMetadata
    beatmaps: list[NormalizedBeatmap] = field(default_factory=list)
    # (difficulty, error) for difficulties that could not be read or parsed
    failures: list[tuple[DifficultyInfo, Exception]] = field(default_factory=list)

    @property
    def hash(self) -> str:
        return self.metadata.hash


def _fill_counts(diff_info: DifficultyInfo, beatmap) -> None:
    diff_info.note_count = len(beatmap.notes)
    diff_info.bomb_count = len(beatmap.bombs)
    diff_info.obstacle_count = len(beatmap.obstacles)
    diff_info.chain_count = len(beatmap.chains)
    if beatmap.notes:
        duration = beatmap.notes[-1].time - beatmap.notes[0].time
        if duration > 0:
            diff_info.nps = len(beatmap.notes) / duration


def parse_map(
    storage: MapStorage,
    source: str = "unknown",
    source_id: str = "",
    strict: bool = False,
) -> MapInfo:
    """Parse Info.dat and every difficulty it lists.

    The content hash is the upper-case SHA-1 of the Info.dat bytes followed
    by each difficulty file's bytes in declared order. It is left empty when
    a listed difficulty file is missing.

    Logs and skips individual difficulties that fail to read or parse,
    recording them in ``MapInfo.failures``; with ``strict=True`` the first
    failure is raised instead.

    Raises:
        MissingResourceError: if the storage holds no Info.dat.
        BadDifficultyError: if Info.dat names an unknown difficulty.
    """
    hasher = hashlib.sha1()
    info_bytes = storage.read(INFO_FILENAME)
    hasher.update(info_bytes)
    metadata, difficulties = parse_info(decode_dat(info_bytes), source=source, source_id=source_id)

    result = MapInfo(metadata=metadata)
    dispatcher = BeatmapDispatcher()
    complete = True

    for diff_info in difficulties:
        try:
            raw = storage.read(diff_info.filename)
        except FileNotFoundError as exc:
            if strict:
                raise
            logger.warning("Missing difficulty file: %s (%s)", diff_info.filename, storage.description)
            complete = False
            result.failures.append((diff_info, exc))
            continue
        hasher.update(raw)

        try:
            document = dispatcher.dispatch(raw)
            beatmap = normalize_beatmap(document, metadata.bpm)
        except (SaberkitError, ValueError) as exc:
            # ValueError covers malformed JSON from the decoder.
            if strict:
                raise
            logger.exception("Failed to parse %s (%s)", diff_info.filename, storage.description)
            result.failures.append((diff_info, exc))
            continue

        _fill_counts(diff_info, beatmap)
        result.beatmaps.append(NormalizedBeatmap(
            metadata=metadata,
            difficulty_info=diff_info,
            beatmap=beatmap,
        ))

    metadata.hash = hasher.hexdigest().upper() if complete else ""
    return result


def parse_map_folder(
    folder: Path,
    source: str = "local",
    source_id: str = "",
    strict: bool = False,
) -> MapInfo:
    """Parse a map folder. Info.dat is found case-insensitively."""
    folder = Path(folder)
    return parse_map(
        DirectoryStorage(folder), source=source, source_id=source_id or folder.name, strict=strict,
    )


def parse_map_archive(
    archive: Path | bytes,
    source: str = "archive",
    source_id: str = "",
    strict: bool = False,
) -> MapInfo:
    """Parse a map zip given as a path or as the archive bytes."""
    if not source_id and isinstance(archive, Path):
        source_id = archive.stem
    with ZipStorage(archive) as storage:
        return parse_map(storage, source=source, source_id=source_id, strict=strict)
