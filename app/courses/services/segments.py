"""Watched-interval bookkeeping for video lessons.

A segment is a ``{"start": s, "end": e}`` mapping of second offsets into the
video. Players report raw, possibly overlapping segments; the stored list is
always the minimal sorted disjoint cover of everything reported so far.
"""

import math
from collections.abc import Iterable, Mapping
from typing import Any

Segment = dict[str, float]


def _normalize(raw: Iterable[Mapping[str, Any]]) -> list[tuple[float, float]]:
    spans = []
    for item in raw:
        start = float(item.get("start", 0) or 0)
        end = float(item.get("end", 0) or 0)
        start = max(start, 0.0)
        if not (math.isfinite(start) and math.isfinite(end)) or end <= start:
            continue
        spans.append((start, end))
    return spans


def _as_number(value: float) -> float | int:
    return int(value) if value == int(value) else value


def merge_segments(raw: Iterable[Mapping[str, Any]]) -> list[Segment]:
    """
    Merge overlapping or touching segments.

    Segments are sorted by start and swept once; a segment whose start is at
    or before the running end extends it. Empty or inverted segments are
    dropped.

    Example:
        >>> merge_segments([{"start": 10, "end": 20}, {"start": 0, "end": 10}])
        [{'start': 0, 'end': 20}]
    """
    spans = sorted(_normalize(raw))
    if not spans:
        return []

    merged: list[tuple[float, float]] = []
    cur_start, cur_end = spans[0]
    for start, end in spans[1:]:
        if start <= cur_end:
            cur_end = max(cur_end, end)
        else:
            merged.append((cur_start, cur_end))
            cur_start, cur_end = start, end
    merged.append((cur_start, cur_end))

    return [{"start": _as_number(s), "end": _as_number(e)} for s, e in merged]


def total_watched(segments: Iterable[Mapping[str, Any]]) -> float:
    """Sum of segment lengths; callers pass an already merged list."""
    return sum(float(seg["end"]) - float(seg["start"]) for seg in segments)


def clip_segments(segments: Iterable[Mapping[str, Any]], limit: float) -> list[Segment]:
    """Cut merged segments at ``limit`` seconds, dropping those that start past it."""
    return [
        {"start": seg["start"], "end": _as_number(min(float(seg["end"]), limit))}
        for seg in segments
        if float(seg["start"]) < limit
    ]
