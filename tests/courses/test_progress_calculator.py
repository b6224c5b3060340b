from datetime import datetime

from app.courses.models.progress import ProgressStatus
from app.courses.services.progress_calculator import (
    ProgressReport,
    ProgressSnapshot,
    calculate_progress,
)

NOW = datetime(2026, 10, 17, 9, 0, 0)
LATER = datetime(2026, 10, 17, 10, 0, 0)


def _watched(seconds: int) -> ProgressReport:
    return ProgressReport(watched_segments=[{"start": 0, "end": seconds}], duration=100)


class TestCalculateProgress:
    def test_should_stay_in_progress_below_threshold(self):
        current = ProgressSnapshot(status=ProgressStatus.IN_PROGRESS, started_at=NOW)

        outcome = calculate_progress(current, _watched(69), threshold=70, now=NOW)

        assert outcome.status == ProgressStatus.IN_PROGRESS
        assert outcome.watch_time == 69
        assert outcome.progress_percent == 69
        assert outcome.completed_at is None

    def test_should_complete_at_threshold(self):
        current = ProgressSnapshot(status=ProgressStatus.IN_PROGRESS, started_at=NOW)

        outcome = calculate_progress(current, _watched(70), threshold=70, now=NOW)

        assert outcome.status == ProgressStatus.COMPLETED
        assert outcome.is_completed
        assert outcome.completed_at == NOW

    def test_should_never_downgrade_completed_lesson(self):
        current = ProgressSnapshot(
            status=ProgressStatus.COMPLETED,
            watched_segments=[],
            duration=100,
            progress_percent=70.0,
            watch_time=70,
            started_at=NOW,
            completed_at=NOW,
        )

        outcome = calculate_progress(current, _watched(50), threshold=70, now=LATER)

        assert outcome.status == ProgressStatus.COMPLETED
        assert outcome.completed_at == NOW

    def test_should_ignore_status_override_on_completed_lesson(self):
        current = ProgressSnapshot(status=ProgressStatus.COMPLETED, completed_at=NOW)

        outcome = calculate_progress(
            current, ProgressReport(status=ProgressStatus.IN_PROGRESS), now=LATER
        )

        assert outcome.status == ProgressStatus.COMPLETED

    def test_should_merge_with_stored_segments(self):
        current = ProgressSnapshot(
            status=ProgressStatus.IN_PROGRESS,
            watched_segments=[{"start": 0, "end": 30}],
            watch_time=30,
            duration=100,
        )

        outcome = calculate_progress(
            current,
            ProgressReport(watched_segments=[{"start": 20, "end": 50}]),
            threshold=70,
            now=NOW,
        )

        assert outcome.watched_segments == [{"start": 0, "end": 50}]
        assert outcome.watch_time == 50
        assert outcome.progress_percent == 50

    def test_should_not_count_rewatched_seconds_twice(self):
        current = ProgressSnapshot(
            status=ProgressStatus.IN_PROGRESS,
            watched_segments=[{"start": 0, "end": 40}],
            watch_time=40,
            duration=100,
        )

        outcome = calculate_progress(
            current, ProgressReport(watched_segments=[{"start": 0, "end": 40}]), now=NOW
        )

        assert outcome.watch_time == 40

    def test_should_use_legacy_watch_time_without_segments(self):
        current = ProgressSnapshot(status=ProgressStatus.NOT_STARTED, watch_time=10)

        outcome = calculate_progress(
            current, ProgressReport(watch_time=40, duration=200), threshold=70, now=NOW
        )

        assert outcome.watch_time == 40
        assert outcome.progress_percent == 20
        assert outcome.status == ProgressStatus.IN_PROGRESS
        assert outcome.started_at == NOW

    def test_should_complete_on_explicit_flag(self):
        outcome = calculate_progress(ProgressSnapshot(), ProgressReport(completed=True), now=NOW)

        assert outcome.status == ProgressStatus.COMPLETED
        assert outcome.started_at == NOW
        assert outcome.completed_at == NOW

    def test_should_keep_percent_when_duration_unknown(self):
        outcome = calculate_progress(
            ProgressSnapshot(progress_percent=12.5),
            ProgressReport(watched_segments=[{"start": 0, "end": 30}]),
            now=NOW,
        )

        assert outcome.duration == 0
        assert outcome.progress_percent == 12.5
        assert outcome.status == ProgressStatus.IN_PROGRESS

    def test_should_cap_percent_at_100(self):
        outcome = calculate_progress(
            ProgressSnapshot(),
            ProgressReport(watched_segments=[{"start": 0, "end": 150}], duration=100),
            now=NOW,
        )

        assert outcome.progress_percent == 100

    def test_should_cut_stored_and_new_segments_at_duration(self):
        outcome = calculate_progress(
            ProgressSnapshot(watched_segments=[{"start": 0, "end": 30}], watch_time=30),
            ProgressReport(watched_segments=[{"start": 180, "end": 400}], duration=200),
            now=NOW,
        )

        assert outcome.watched_segments == [{"start": 0, "end": 30}, {"start": 180, "end": 200}]
        assert outcome.watch_time == 50
        assert outcome.progress_percent == 25
