"""Pure derivation of a lesson-progress row from a progress report."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.core.config import settings
from app.core.datetime_utils import utcnow
from app.courses.models.progress import ProgressStatus
from app.courses.services.segments import clip_segments, merge_segments, total_watched


@dataclass
class ProgressSnapshot:
    """The stored state a report is applied to."""

    status: ProgressStatus = ProgressStatus.NOT_STARTED
    watched_segments: list[dict[str, Any]] = field(default_factory=list)
    watch_time: int = 0
    duration: int = 0
    progress_percent: float = 0.0
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass
class ProgressReport:
    """What a client sent; every field is optional."""

    watched_segments: list[dict[str, Any]] | None = None
    watch_time: int | None = None
    duration: int | None = None
    completed: bool | None = None
    status: ProgressStatus | None = None


@dataclass
class ProgressOutcome:
    status: ProgressStatus
    watched_segments: list[dict[str, Any]]
    watch_time: int
    duration: int
    progress_percent: float
    started_at: datetime | None
    completed_at: datetime | None

    @property
    def is_completed(self) -> bool:
        return self.status == ProgressStatus.COMPLETED


def _percent(watch_time: float, duration: int) -> float:
    return round(min(100.0, watch_time / duration * 100), 2)


def calculate_progress(
    current: ProgressSnapshot,
    report: ProgressReport,
    threshold: int | None = None,
    now: datetime | None = None,
) -> ProgressOutcome:
    """
    Apply a progress report to the stored state.

    Segments are merged with what is already stored and cut at the known
    duration, watch time is their total, and the percentage is watch time over
    the duration. Crossing the completion threshold completes the lesson; a
    completed lesson is never downgraded by later watch data and its
    completed_at never moves.

    Args:
        current: Stored state of the row
        report: Incoming client report
        threshold: Completion percentage, defaults to LESSON_COMPLETION_THRESHOLD
        now: Timestamp used for started_at/completed_at stamps

    Returns:
        The new derived state; nothing is persisted here
    """
    threshold = settings.LESSON_COMPLETION_THRESHOLD if threshold is None else threshold
    now = now or utcnow()

    duration = report.duration if report.duration and report.duration > 0 else current.duration

    segments = merge_segments([*current.watched_segments, *(report.watched_segments or [])])
    if duration > 0:
        segments = clip_segments(segments, duration)
    if segments:
        watch_time = int(round(total_watched(segments)))
    elif report.watch_time is not None:
        # Older players report a running total instead of segments
        watch_time = max(current.watch_time, int(report.watch_time))
    else:
        watch_time = current.watch_time

    percent = _percent(watch_time, duration) if duration > 0 else current.progress_percent

    status = current.status
    started_at = current.started_at
    completed_at = current.completed_at

    if status != ProgressStatus.COMPLETED:
        if duration > 0 and percent >= threshold:
            status = ProgressStatus.COMPLETED
        elif status == ProgressStatus.NOT_STARTED and watch_time > 0:
            status = ProgressStatus.IN_PROGRESS

    if report.completed:
        status = ProgressStatus.COMPLETED
    elif report.status is not None and status != ProgressStatus.COMPLETED:
        status = report.status

    if status in (ProgressStatus.IN_PROGRESS, ProgressStatus.COMPLETED) and started_at is None:
        started_at = now
    if status == ProgressStatus.COMPLETED and completed_at is None:
        completed_at = now

    return ProgressOutcome(
        status=status,
        watched_segments=segments,
        watch_time=watch_time,
        duration=duration,
        progress_percent=percent,
        started_at=started_at,
        completed_at=completed_at,
    )
