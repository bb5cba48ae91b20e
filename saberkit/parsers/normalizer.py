"""Turn a dialect-specific beatmap into the unified, time-resolved model."""

from __future__ import annotations

from saberkit.parsers.tempo import TempoTimeline
from saberkit.schemas import v2, v3, v4
from saberkit.schemas.common import CutDirection
from saberkit.schemas.detection import BeatmapDispatcher, BeatmapDocument
from saberkit.schemas.normalized import (
    Beatmap,
    BombNote,
    Chain,
    ColorNote,
    NoteColor,
    NoteDirection,
    Obstacle,
)

# Explicit, total translations; dialect enum values are never cast.
_DIRECTIONS = {
    CutDirection.UP: NoteDirection.UP,
    CutDirection.DOWN: NoteDirection.DOWN,
    CutDirection.LEFT: NoteDirection.LEFT,
    CutDirection.RIGHT: NoteDirection.RIGHT,
    CutDirection.UP_LEFT: NoteDirection.UP_LEFT,
    CutDirection.UP_RIGHT: NoteDirection.UP_RIGHT,
    CutDirection.DOWN_LEFT: NoteDirection.DOWN_LEFT,
    CutDirection.DOWN_RIGHT: NoteDirection.DOWN_RIGHT,
    CutDirection.ANY: NoteDirection.ANY,
}

_V2_COLORS = {
    v2.NoteType.RED: NoteColor.RED,
    v2.NoteType.BLUE: NoteColor.BLUE,
}

_V3_COLORS = {
    v3.ColorType.RED: NoteColor.RED,
    v3.ColorType.BLUE: NoteColor.BLUE,
}


def _obstacle(
    timeline: TempoTimeline,
    beat: float,
    duration_beats: float,
    x: float,
    y: float,
    width: float,
    height: float,
) -> Obstacle:
    # Map the end beat on its own: the tempo may change inside the wall.
    time = timeline.beat_to_seconds(beat)
    end_time = timeline.beat_to_seconds(beat + duration_beats)
    return Obstacle(
        beat=beat,
        time=time,
        duration_beats=duration_beats,
        duration=end_time - time,
        end_time=end_time,
        x=x,
        y=y,
        width=width,
        height=height,
    )


def _sorted(beatmap: Beatmap) -> Beatmap:
    beatmap.notes.sort(key=lambda n: n.beat)
    beatmap.bombs.sort(key=lambda b: b.beat)
    beatmap.obstacles.sort(key=lambda o: o.beat)
    beatmap.chains.sort(key=lambda c: c.beat)
    return beatmap


def normalize_v2(beatmap: v2.Beatmap, timeline: TempoTimeline) -> Beatmap:
    """Convert a v2 beatmap. Notes and bombs share _notes; v2 has no chains."""
    result = Beatmap()

    for raw in beatmap.notes:
        time = timeline.beat_to_seconds(raw.beat)
        if raw.note_type == v2.NoteType.BOMB:
            result.bombs.append(BombNote(beat=raw.beat, time=time, x=raw.x, y=raw.y))
        else:
            result.notes.append(ColorNote(
                beat=raw.beat,
                time=time,
                x=raw.x,
                y=raw.y,
                color=_V2_COLORS[raw.note_type],
                direction=_DIRECTIONS[raw.direction],
                angle_offset=raw.angle_offset,
            ))

    for raw in beatmap.obstacles:
        result.obstacles.append(_obstacle(
            timeline, raw.beat, raw.duration,
            x=raw.x, y=raw.geometry.y, width=raw.width, height=raw.geometry.height,
        ))

    return _sorted(result)


def normalize_v3(beatmap: v3.Beatmap, timeline: TempoTimeline) -> Beatmap:
    """Convert a v3 beatmap, including burst sliders."""
    result = Beatmap()

    for raw in beatmap.color_notes:
        result.notes.append(ColorNote(
            beat=raw.beat,
            time=timeline.beat_to_seconds(raw.beat),
            x=raw.x,
            y=raw.y,
            color=_V3_COLORS[raw.color],
            direction=_DIRECTIONS[raw.direction],
            angle_offset=raw.angle_offset,
        ))

    for raw in beatmap.bomb_notes:
        result.bombs.append(BombNote(
            beat=raw.beat, time=timeline.beat_to_seconds(raw.beat), x=raw.x, y=raw.y,
        ))

    for raw in beatmap.obstacles:
        result.obstacles.append(_obstacle(
            timeline, raw.beat, raw.duration,
            x=raw.x, y=raw.y, width=raw.width, height=raw.height,
        ))

    for raw in beatmap.burst_sliders:
        result.chains.append(Chain(
            beat=raw.beat,
            time=timeline.beat_to_seconds(raw.beat),
            x=raw.x,
            y=raw.y,
            color=_V3_COLORS[raw.color],
            direction=_DIRECTIONS[raw.direction],
            tail_beat=raw.tail_beat,
            tail_time=timeline.beat_to_seconds(raw.tail_beat),
            tail_x=raw.tail_x,
            tail_y=raw.tail_y,
            num_slices=raw.num_slices,
            squish_factor=raw.squish_factor,
        ))

    return _sorted(result)


def normalize_v4(beatmap: v4.Beatmap, timeline: TempoTimeline) -> Beatmap:
    """Convert a v4 beatmap by dereferencing each entry's data index."""
    result = Beatmap()

    for ref in beatmap.color_notes:
        data = beatmap.color_notes_data[ref.index]
        result.notes.append(ColorNote(
            beat=ref.beat,
            time=timeline.beat_to_seconds(ref.beat),
            x=data.x,
            y=data.y,
            color=_V3_COLORS[data.color],
            direction=_DIRECTIONS[data.direction],
            angle_offset=data.angle_offset,
        ))

    for ref in beatmap.bomb_notes:
        data = beatmap.bomb_notes_data[ref.index]
        result.bombs.append(BombNote(
            beat=ref.beat, time=timeline.beat_to_seconds(ref.beat), x=data.x, y=data.y,
        ))

    for ref in beatmap.obstacles:
        data = beatmap.obstacles_data[ref.index]
        result.obstacles.append(_obstacle(
            timeline, ref.beat, data.duration,
            x=data.x, y=data.y, width=data.width, height=data.height,
        ))

    for ref in beatmap.chains:
        head = beatmap.color_notes_data[ref.index]
        chain = beatmap.chains_data[ref.chain_index]
        result.chains.append(Chain(
            beat=ref.beat,
            time=timeline.beat_to_seconds(ref.beat),
            x=head.x,
            y=head.y,
            color=_V3_COLORS[head.color],
            direction=_DIRECTIONS[head.direction],
            tail_beat=ref.tail_beat,
            tail_time=timeline.beat_to_seconds(ref.tail_beat),
            tail_x=chain.tail_x,
            tail_y=chain.tail_y,
            num_slices=chain.num_slices,
            squish_factor=chain.squish_factor,
        ))

    return _sorted(result)


_NORMALIZERS = {
    v2.Beatmap: normalize_v2,
    v3.Beatmap: normalize_v3,
    v4.Beatmap: normalize_v4,
}


def normalize_beatmap(document: BeatmapDocument, bpm: float) -> Beatmap:
    """Build the unified beatmap from an adapted document and its starting BPM.

    Args:
        document: A v2, v3 or v4 beatmap model from the dispatcher.
        bpm: Starting tempo, normally the Info.dat BPM.

    Returns:
        Unified notes, bombs, obstacles and chains with beats and seconds.

    Raises:
        TempoMapError: if the document's tempo events are not beat-ordered.
    """
    normalize = _NORMALIZERS.get(type(document))
    if normalize is None:
        raise TypeError(f"not a beatmap document: {type(document).__name__}")
    timeline = TempoTimeline(bpm, document.tempo_events())
    return normalize(document, timeline)


def parse_beatmap(
    document: dict | str | bytes,
    bpm: float,
    dispatcher: BeatmapDispatcher | None = None,
) -> Beatmap:
    """Detect, adapt and normalize one difficulty document in a single call."""
    dispatcher = dispatcher or BeatmapDispatcher()
    return normalize_beatmap(dispatcher.dispatch(document), bpm)
