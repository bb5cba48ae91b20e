"""Convert beats to seconds through a map's tempo changes."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable

from saberkit.errors import TempoMapError
from saberkit.schemas.normalized import TempoChangeEvent


@dataclass(frozen=True)
class TempoSegment:
    """A beat range with constant tempo, starting at ``start_beat``."""

    start_beat: float
    start_time: float  # seconds
    bpm: float

    def to_seconds(self, beat: float) -> float:
        return self.start_time + (beat - self.start_beat) / self.bpm * 60.0


class TempoTimeline:
    """Piecewise-linear beat -> seconds mapping.

    Built from a base tempo and tempo-change events in file order. An event
    at beat 0 replaces the base tempo; otherwise the base tempo runs from
    beat 0 until the first event. Each segment's start time is accumulated
    from the segment before it.

    Instances are immutable after construction, so ``beat_to_seconds`` is
    safe to call from any thread.
    """

    def __init__(self, base_bpm: float, events: Iterable[TempoChangeEvent] = ()):
        events = list(events)
        self.base_bpm = float(base_bpm)
        self._segments: list[TempoSegment] = []

        previous_beat = None
        for pos, event in enumerate(events):
            if not event.bpm > 0:
                raise TempoMapError(f"tempo event {pos} has non-positive BPM {event.bpm}")
            if event.beat < 0:
                raise TempoMapError(f"tempo event {pos} is before beat 0 ({event.beat})")
            if previous_beat is not None and event.beat < previous_beat:
                raise TempoMapError(
                    f"tempo event {pos} at beat {event.beat} precedes beat {previous_beat}"
                )
            previous_beat = event.beat

        remaining = events
        if events and events[0].beat == 0:
            self.base_bpm = float(events[0].bpm)
            remaining = events[1:]
        if not self.base_bpm > 0:
            raise TempoMapError(f"base BPM must be positive, got {base_bpm}")

        if events:
            self._segments.append(TempoSegment(0.0, 0.0, self.base_bpm))
            for event in remaining:
                last = self._segments[-1]
                self._segments.append(TempoSegment(
                    start_beat=float(event.beat),
                    start_time=last.to_seconds(event.beat),
                    bpm=float(event.bpm),
                ))

        self._starts = [segment.start_beat for segment in self._segments]

    @property
    def segments(self) -> tuple[TempoSegment, ...]:
        return tuple(self._segments)

    @property
    def is_constant(self) -> bool:
        return len(self._segments) <= 1

    def _segment_for(self, beat: float) -> TempoSegment | None:
        if not self._segments:
            return None
        # Last segment starting at or before ``beat``; equal starts pick the later one.
        idx = bisect_right(self._starts, beat) - 1
        return self._segments[max(idx, 0)]

    def beat_to_seconds(self, beat: float) -> float:
        segment = self._segment_for(beat)
        if segment is None:
            return beat * 60.0 / self.base_bpm
        return segment.to_seconds(beat)

    def bpm_at(self, beat: float) -> float:
        segment = self._segment_for(beat)
        return self.base_bpm if segment is None else segment.bpm

    def __repr__(self) -> str:
        return f"TempoTimeline(base_bpm={self.base_bpm}, segments={len(self._segments)})"
