"""Orchestrate normalization of every map found below the input paths."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from saberkit.parsers.beatmap_parser import MapInfo
from saberkit.pipeline.config import PipelineConfig
from saberkit.pipeline.processor import detect_source, process_map
from saberkit.schemas.normalized import NormalizedBeatmap
from saberkit.storage.writer import write_parquet

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    total_songs: int = 0
    total_beatmaps: int = 0
    total_notes: int = 0
    duplicates: int = 0
    errors: list[str] = field(default_factory=list)


def _is_map_folder(path: Path) -> bool:
    return path.is_dir() and any(
        p.is_file() and p.name.lower() == "info.dat" for p in path.iterdir()
    )


def find_maps(input_path: Path, include_archives: bool = True) -> list[Path]:
    """Map folders (holding an Info.dat, any case) and .zip maps below *input_path*."""
    input_path = Path(input_path)
    if input_path.is_file():
        return [input_path] if include_archives and input_path.suffix.lower() == ".zip" else []
    if _is_map_folder(input_path):
        return [input_path]

    found: set[Path] = set()
    for path in input_path.rglob("*"):
        if not path.is_file():
            continue
        name = path.name.lower()
        if name == "info.dat":
            found.add(path.parent)
        elif include_archives and name.endswith(".zip"):
            found.add(path)
    return sorted(found)


def run_pipeline(config: PipelineConfig) -> PipelineResult:
    """Find, normalize and write every map described by *config*.

    Maps are parsed on a thread pool. Maps whose content hash was already
    seen are skipped so that a song present as both folder and zip is
    written once. A map that fails as a whole is logged and recorded in
    ``PipelineResult.errors``; the rest of the batch continues.
    """
    jobs: list[tuple[Path, str]] = []
    for root in config.input_paths:
        for map_path in find_maps(root, include_archives=config.include_archives):
            jobs.append((map_path, detect_source(map_path, root)))
    logger.info("Found %d maps in %d input paths", len(jobs), len(config.input_paths))

    result = PipelineResult()
    infos: list[MapInfo] = []

    with ThreadPoolExecutor(max_workers=max(1, config.workers)) as pool:
        futures = [
            (path, pool.submit(process_map, path, source, strict=config.strict))
            for path, source in jobs
        ]
        # Collect in discovery order so duplicates resolve deterministically.
        for path, future in futures:
            try:
                infos.append(future.result())
            except Exception as exc:
                logger.exception("Failed to process %s", path)
                result.errors.append(f"{path}: {exc}")

    all_beatmaps: list[NormalizedBeatmap] = []
    seen_hashes: set[str] = set()
    total_songs = 0
    for info in infos:
        # Maps without a hash (missing difficulty files) are never duplicates.
        if info.hash and info.hash in seen_hashes:
            logger.info("Skipping duplicate map %s (%s)", info.metadata.source_id, info.hash)
            result.duplicates += 1
            continue
        if info.hash:
            seen_hashes.add(info.hash)
        total_songs += 1
        for diff_info, exc in info.failures:
            result.errors.append(f"{info.metadata.source_id}/{diff_info.filename}: {exc}")
        all_beatmaps.extend(info.beatmaps)

    logger.info("Writing %d beatmaps to %s...", len(all_beatmaps), config.output_dir)
    write_parquet(all_beatmaps, config.output_dir, max_file_bytes=config.max_file_bytes)

    result.total_songs = total_songs
    result.total_beatmaps = len(all_beatmaps)
    result.total_notes = sum(len(bm.beatmap.notes) for bm in all_beatmaps)
    logger.info(
        "Pipeline complete: %d songs, %d beatmaps, %d notes, %d errors",
        result.total_songs,
        result.total_beatmaps,
        result.total_notes,
        len(result.errors),
    )
    return result
