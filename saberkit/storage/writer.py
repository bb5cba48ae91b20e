"""Write normalized Beat Saber beatmap data to Parquet files and JSON metadata."""

import json
import logging
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from saberkit.schemas.normalized import NormalizedBeatmap

logger = logging.getLogger(__name__)

# Maximum Parquet file size in bytes before starting a new file.
MAX_FILE_BYTES: int = 1_000_000_000  # 1 GB

# --- Arrow schemas -----------------------------------------------------------

_KEY_FIELDS = [
    pa.field("song_hash", pa.string()),
    pa.field("source", pa.string()),
    pa.field("difficulty", pa.string()),
    pa.field("characteristic", pa.string()),
    pa.field("bpm", pa.float32()),
    pa.field("beat", pa.float32()),
    pa.field("time", pa.float32()),
]

NOTES_SCHEMA = pa.schema(
    _KEY_FIELDS
    + [
        pa.field("x", pa.float32()),
        pa.field("y", pa.float32()),
        pa.field("color", pa.int8()),
        pa.field("direction", pa.int8()),
        pa.field("angle_offset", pa.float32()),
    ]
)

BOMBS_SCHEMA = pa.schema(
    _KEY_FIELDS
    + [
        pa.field("x", pa.float32()),
        pa.field("y", pa.float32()),
    ]
)

OBSTACLES_SCHEMA = pa.schema(
    _KEY_FIELDS
    + [
        pa.field("duration_beats", pa.float32()),
        pa.field("duration", pa.float32()),
        pa.field("end_time", pa.float32()),
        pa.field("x", pa.float32()),
        pa.field("y", pa.float32()),
        pa.field("width", pa.float32()),
        pa.field("height", pa.float32()),
    ]
)

CHAINS_SCHEMA = pa.schema(
    _KEY_FIELDS
    + [
        pa.field("x", pa.float32()),
        pa.field("y", pa.float32()),
        pa.field("color", pa.int8()),
        pa.field("direction", pa.int8()),
        pa.field("tail_beat", pa.float32()),
        pa.field("tail_time", pa.float32()),
        pa.field("tail_x", pa.float32()),
        pa.field("tail_y", pa.float32()),
        pa.field("num_slices", pa.int16()),
        pa.field("squish_factor", pa.float32()),
    ]
)


# --- Public API --------------------------------------------------------------


def _write_tables_chunked(
    tables_by_hash: dict[str, pa.Table],
    output_dir: Path,
    prefix: str,
    schema: pa.Schema,
    max_file_bytes: int = MAX_FILE_BYTES,
) -> list[Path]:
    """Write Arrow tables as one-row-group-per-song files, splitting at *max_file_bytes*.

    Each song_hash gets its own row group inside the Parquet file.  When the
    current file would exceed *max_file_bytes*, a new file is started.

    Returns the list of written file paths.
    """
    written: list[Path] = []
    file_idx = 0
    writer: pq.ParquetWriter | None = None
    current_path: Path | None = None

    def _open_writer() -> tuple[pq.ParquetWriter, Path]:
        nonlocal file_idx
        p = output_dir / f"{prefix}_{file_idx:04d}.parquet"
        w = pq.ParquetWriter(p, schema, compression="snappy")
        file_idx += 1
        return w, p

    pending = [(h, t) for h, t in sorted(tables_by_hash.items()) if t.num_rows > 0]
    for i, (_hash, table) in enumerate(pending):
        if writer is None:
            writer, current_path = _open_writer()

        writer.write_table(table)

        # Only roll over when another song is still to come.
        current_size = current_path.stat().st_size
        if current_size >= max_file_bytes and i < len(pending) - 1:
            writer.close()
            written.append(current_path)
            logger.debug("Closed %s (%d bytes)", current_path.name, current_size)
            writer, current_path = None, None

    if writer is not None:
        writer.close()
        written.append(current_path)

    return written


def _key_columns(schema: pa.Schema) -> dict[str, list]:
    return {k: [] for k in schema.names}


def _append_keys(cols: dict[str, list], bm: NormalizedBeatmap, beat: float, time: float) -> None:
    cols["song_hash"].append(bm.metadata.hash)
    cols["source"].append(bm.metadata.source)
    cols["difficulty"].append(bm.difficulty_info.difficulty)
    cols["characteristic"].append(bm.difficulty_info.characteristic)
    cols["bpm"].append(bm.metadata.bpm)
    cols["beat"].append(beat)
    cols["time"].append(time)


def write_parquet(
    beatmaps: list[NormalizedBeatmap],
    output_dir: Path,
    max_file_bytes: int = MAX_FILE_BYTES,
) -> None:
    """Write a list of normalized beatmaps to Parquet files and JSON metadata.

    Each song_hash gets its own row group so that readers can push down
    predicates and skip irrelevant data.  When a Parquet file exceeds
    *max_file_bytes* (default 1 GB), a new numbered file is started.

    Produces inside *output_dir*:
      - notes_NNNN.parquet  (one or more)
      - bombs_NNNN.parquet  (one or more)
      - obstacles_NNNN.parquet  (one or more)
      - chains_NNNN.parquet  (when any map has chains)
      - metadata.json

    Parameters
    ----------
    beatmaps:
        Normalized beatmap objects (one per difficulty).
    output_dir:
        Directory to write output files into. Created if it doesn't exist.
    max_file_bytes:
        Maximum size in bytes per Parquet file before splitting.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    # Accumulate columnar data grouped by song_hash
    notes_by_hash: dict[str, dict[str, list]] = {}
    bombs_by_hash: dict[str, dict[str, list]] = {}
    obstacles_by_hash: dict[str, dict[str, list]] = {}
    chains_by_hash: dict[str, dict[str, list]] = {}
    metadata_by_hash: dict[str, dict] = {}
    # Maps without a content hash are grouped per map, after the hashed ones.
    unhashed_keys: dict[int, str] = {}

    for bm in beatmaps:
        meta = bm.metadata
        diff = bm.difficulty_info
        song_hash = meta.hash
        group = song_hash or unhashed_keys.setdefault(id(meta), f"~{len(unhashed_keys):06d}")

        cols = notes_by_hash.setdefault(group, _key_columns(NOTES_SCHEMA))
        for note in bm.beatmap.notes:
            _append_keys(cols, bm, note.beat, note.time)
            cols["x"].append(note.x)
            cols["y"].append(note.y)
            cols["color"].append(int(note.color))
            cols["direction"].append(int(note.direction))
            cols["angle_offset"].append(note.angle_offset)

        bcols = bombs_by_hash.setdefault(group, _key_columns(BOMBS_SCHEMA))
        for bomb in bm.beatmap.bombs:
            _append_keys(bcols, bm, bomb.beat, bomb.time)
            bcols["x"].append(bomb.x)
            bcols["y"].append(bomb.y)

        ocols = obstacles_by_hash.setdefault(group, _key_columns(OBSTACLES_SCHEMA))
        for obs in bm.beatmap.obstacles:
            _append_keys(ocols, bm, obs.beat, obs.time)
            ocols["duration_beats"].append(obs.duration_beats)
            ocols["duration"].append(obs.duration)
            ocols["end_time"].append(obs.end_time)
            ocols["x"].append(obs.x)
            ocols["y"].append(obs.y)
            ocols["width"].append(obs.width)
            ocols["height"].append(obs.height)

        ccols = chains_by_hash.setdefault(group, _key_columns(CHAINS_SCHEMA))
        for chain in bm.beatmap.chains:
            _append_keys(ccols, bm, chain.beat, chain.time)
            ccols["x"].append(chain.x)
            ccols["y"].append(chain.y)
            ccols["color"].append(int(chain.color))
            ccols["direction"].append(int(chain.direction))
            ccols["tail_beat"].append(chain.tail_beat)
            ccols["tail_time"].append(chain.tail_time)
            ccols["tail_x"].append(chain.tail_x)
            ccols["tail_y"].append(chain.tail_y)
            ccols["num_slices"].append(chain.num_slices)
            ccols["squish_factor"].append(chain.squish_factor)

        # --- Metadata (deduplicated by hash) ---
        if group not in metadata_by_hash:
            metadata_by_hash[group] = {
                "hash": song_hash,
                "source": meta.source,
                "source_id": meta.source_id,
                "song_name": meta.song_name,
                "song_author": meta.song_author,
                "mapper_name": meta.mapper_name,
                "bpm": meta.bpm,
                "difficulties": [],
            }

        metadata_by_hash[group]["difficulties"].append(
            {
                "characteristic": diff.characteristic,
                "difficulty": diff.difficulty,
                "difficulty_rank": diff.difficulty_rank,
                "note_count": diff.note_count,
                "bomb_count": diff.bomb_count,
                "obstacle_count": diff.obstacle_count,
                "chain_count": diff.chain_count,
                "nps": diff.nps,
            }
        )

    outputs = [
        ("notes", notes_by_hash, NOTES_SCHEMA),
        ("bombs", bombs_by_hash, BOMBS_SCHEMA),
        ("obstacles", obstacles_by_hash, OBSTACLES_SCHEMA),
        ("chains", chains_by_hash, CHAINS_SCHEMA),
    ]
    counts = {}
    for prefix, by_hash, schema in outputs:
        tables = {h: pa.table(cols, schema=schema) for h, cols in by_hash.items()}
        counts[prefix] = len(
            _write_tables_chunked(tables, output_dir, prefix, schema, max_file_bytes)
        )

    logger.info(
        "Wrote %d notes files, %d bombs files, %d obstacles files, %d chains files to %s",
        counts["notes"], counts["bombs"], counts["obstacles"], counts["chains"], output_dir,
    )

    # --- Write metadata JSON ---
    metadata_list = list(metadata_by_hash.values())
    with open(output_dir / "metadata.json", "w", encoding="utf-8") as f:
        json.dump(metadata_list, f, indent=2)


def read_notes_parquet(path: Path) -> pa.Table:
    """Read notes Parquet file(s) and return a single Arrow table.

    Accepts either a single ``.parquet`` file or a directory containing
    ``notes_*.parquet`` files.
    """
    path = Path(path)
    if path.is_dir():
        files = sorted(path.glob("notes_*.parquet"))
        if not files:
            raise FileNotFoundError(f"No notes Parquet files in {path}")
        tables = [pq.read_table(f) for f in files]
        return pa.concat_tables(tables)
    return pq.read_table(path)
