"""Command-line interface for the saberkit beatmap tools."""

import argparse
import logging
from pathlib import Path


def cmd_inspect(args: argparse.Namespace) -> None:
    from saberkit.pipeline.processor import detect_source, process_map

    path = Path(args.path)
    info = process_map(path, source=detect_source(path, path.parent))
    meta = info.metadata
    title = meta.song_name if not meta.song_sub_name else f"{meta.song_name} ({meta.song_sub_name})"
    print(f"{title} by {meta.song_author}, mapped by {meta.mapper_name or 'unknown'}")
    print(f"BPM: {meta.bpm:g}  hash: {info.hash or '-'}  source: {meta.source}")
    for bm in info.beatmaps:
        diff = bm.difficulty_info
        nps = f"{diff.nps:.2f}" if diff.nps is not None else "-"
        print(
            f"  {diff.characteristic}/{diff.difficulty}: {diff.note_count} notes, "
            f"{diff.bomb_count} bombs, {diff.obstacle_count} obstacles, "
            f"{diff.chain_count} chains, {nps} nps"
        )
    for diff, exc in info.failures:
        print(f"  {diff.characteristic}/{diff.difficulty}: FAILED ({exc})")


def cmd_process(args: argparse.Namespace) -> None:
    from saberkit.pipeline.batch import run_pipeline
    from saberkit.pipeline.config import PipelineConfig

    config = PipelineConfig()
    if args.config:
        config = PipelineConfig.load(Path(args.config))
    if args.input:
        config.input_paths = [Path(p) for p in args.input]
    if args.output:
        config.output_dir = Path(args.output)
    if args.workers:
        config.workers = args.workers
    if args.strict:
        config.strict = True
    if args.no_archives:
        config.include_archives = False

    result = run_pipeline(config)
    print(
        f"Processed {result.total_beatmaps} beatmaps from {result.total_songs} songs "
        f"({result.total_notes} notes) to {config.output_dir}"
    )
    if result.duplicates:
        print(f"Skipped {result.duplicates} duplicate maps")
    if result.errors:
        print(f"{len(result.errors)} errors:")
        for error in result.errors:
            print(f"  {error}")


def cmd_replay(args: argparse.Namespace) -> None:
    from saberkit.parsers.replay import Replay

    replay = Replay.from_file(Path(args.path))
    info = replay.info
    print(f"{info.player_name} on {info.song_name} ({info.mode}/{info.difficulty})")
    print(f"Map hash: {info.song_hash}  mapper: {info.mapper}")
    print(f"Score: {info.score}  modifiers: {','.join(info.modifiers) or 'none'}")
    print(f"Game {info.game_version} on {info.platform}, {info.hmd}")
    duration = float(replay.frames["time"][-1]) if len(replay.frames) else 0.0
    print(f"Frames: {len(replay.frames)} ({duration:.1f} s)")


def cmd_download(args: argparse.Namespace) -> None:
    from saberkit.sources.beatsaver import BeatSaverClient

    client = BeatSaverClient()
    downloaded = client.download_maps(args.ids, Path(args.output), workers=args.workers)
    print(f"Done: {len(downloaded)} of {len(args.ids)} maps in {args.output}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="saberkit",
        description="Beat Saber beatmap normalization tools",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command")

    # inspect
    ins = sub.add_parser("inspect", help="Summarize a map folder or zip")
    ins.add_argument("path", help="Map folder or .zip archive")

    # process
    proc = sub.add_parser("process", help="Normalize maps into Parquet")
    proc.add_argument("--input", nargs="+", default=None,
                      help="Folders to scan for maps (default: data/raw)")
    proc.add_argument("--output", default=None,
                      help="Output directory (default: data/processed)")
    proc.add_argument("--config", default=None, help="Optional JSON config file")
    proc.add_argument("--workers", type=int, default=None, help="Parallel map workers")
    proc.add_argument("--strict", action="store_true",
                      help="Fail a map on its first bad difficulty")
    proc.add_argument("--no-archives", action="store_true", help="Skip .zip maps")

    # replay
    rep = sub.add_parser("replay", help="Summarize a .bsor replay")
    rep.add_argument("path", help="Replay file")

    # download
    dl = sub.add_parser("download", help="Download maps from BeatSaver by id")
    dl.add_argument("ids", nargs="+", help="BeatSaver map ids")
    dl.add_argument("--output", default="data/raw/beatsaver")
    dl.add_argument("--workers", type=int, default=8)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "inspect": cmd_inspect,
        "process": cmd_process,
        "replay": cmd_replay,
        "download": cmd_download,
    }

    handler = commands.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
