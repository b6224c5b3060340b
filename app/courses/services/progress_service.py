import logging
from typing import cast
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.datetime_utils import utcnow
from app.core.redis import (
    cache_delete,
    cache_get_json,
    cache_set_json,
    progress_summary_key,
    student_course_key,
)
from app.courses.models import Lesson, LessonProgress, LessonStatus, ProgressStatus
from app.courses.services.enrollment_service import EnrollmentService
from app.courses.services.progress_calculator import (
    ProgressReport,
    ProgressSnapshot,
    calculate_progress,
)

logger = logging.getLogger(__name__)


class ProgressService:
    @staticmethod
    def get_progress(user_id: UUID, lesson_id: UUID, db: Session) -> LessonProgress | None:
        progress = (
            db.query(LessonProgress)
            .filter(LessonProgress.user_id == user_id, LessonProgress.lesson_id == lesson_id)
            .first()
        )
        return cast(LessonProgress | None, progress)

    @staticmethod
    def get_or_create(
        user_id: UUID, course_id: UUID, lesson_id: UUID, db: Session
    ) -> LessonProgress:
        """Return the progress row for a lesson, creating a NOT_STARTED one on first view."""
        progress = ProgressService.get_progress(user_id, lesson_id, db)
        if progress:
            return progress

        progress = LessonProgress(
            user_id=user_id,
            course_id=course_id,
            lesson_id=lesson_id,
            status=ProgressStatus.NOT_STARTED,
        )
        db.add(progress)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent first view inserted the row between our read and write
            db.rollback()
            existing = ProgressService.get_progress(user_id, lesson_id, db)
            if existing is None:
                raise
            return existing

        db.refresh(progress)
        return progress

    @staticmethod
    async def mark_started(
        user_id: UUID, course_id: UUID, lesson_id: UUID, db: Session
    ) -> LessonProgress:
        progress = ProgressService.get_or_create(user_id, course_id, lesson_id, db)
        if progress.status != ProgressStatus.NOT_STARTED:
            return progress

        now = utcnow()
        updated = (
            db.query(LessonProgress)
            .filter(
                LessonProgress.id == progress.id,
                LessonProgress.status == ProgressStatus.NOT_STARTED,
            )
            .update(
                {
                    LessonProgress.status: ProgressStatus.IN_PROGRESS,
                    LessonProgress.started_at: func.coalesce(LessonProgress.started_at, now),
                    LessonProgress.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        db.commit()
        db.refresh(progress)

        if updated:
            await ProgressService._after_write(user_id, course_id, db)
        return progress

    @staticmethod
    async def update_progress(
        user_id: UUID,
        lesson_id: UUID,
        report: ProgressReport,
        db: Session,
        last_position: int | None = None,
    ) -> LessonProgress | None:
        """
        Apply a player report to the user's progress row for a lesson.

        The row is locked for the duration of the read-modify-write so that
        concurrent reports for the same lesson are applied one after another.

        Returns:
            The updated row, or None when the lesson was never opened
        """
        progress = (
            db.query(LessonProgress)
            .filter(LessonProgress.user_id == user_id, LessonProgress.lesson_id == lesson_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if progress is None:
            db.rollback()
            return None

        outcome = calculate_progress(
            ProgressSnapshot(
                status=progress.status,
                watched_segments=list(progress.watched_segments or []),
                watch_time=progress.watch_time,
                duration=progress.duration,
                progress_percent=progress.progress_percent,
                started_at=progress.started_at,
                completed_at=progress.completed_at,
            ),
            report,
        )

        was_completed = progress.status == ProgressStatus.COMPLETED
        progress.status = outcome.status
        progress.watched_segments = outcome.watched_segments
        progress.watch_time = outcome.watch_time
        progress.duration = outcome.duration
        progress.progress_percent = outcome.progress_percent
        progress.started_at = outcome.started_at
        progress.completed_at = outcome.completed_at
        if last_position is not None:
            progress.last_position = max(0, last_position)
        progress.updated_at = utcnow()

        db.commit()
        db.refresh(progress)

        if outcome.is_completed and not was_completed:
            logger.info(
                "lesson_completed user_id=%s lesson_id=%s percent=%s",
                user_id,
                lesson_id,
                outcome.progress_percent,
            )

        await ProgressService._after_write(user_id, progress.course_id, db)
        return progress

    @staticmethod
    async def mark_completed(user_id: UUID, lesson_id: UUID, db: Session) -> LessonProgress | None:
        return await ProgressService.update_progress(
            user_id, lesson_id, ProgressReport(completed=True), db
        )

    @staticmethod
    def get_progress_map(
        user_id: UUID, lesson_ids: list[UUID], db: Session
    ) -> dict[UUID, LessonProgress]:
        if not lesson_ids:
            return {}
        rows = (
            db.query(LessonProgress)
            .filter(LessonProgress.user_id == user_id, LessonProgress.lesson_id.in_(lesson_ids))
            .all()
        )
        return {row.lesson_id: row for row in rows}

    @staticmethod
    async def get_course_progress_summary(user_id: UUID, course_id: UUID, db: Session) -> dict:
        """Lesson counts by status for the published lessons of a course (cached)."""
        cache_key = progress_summary_key(user_id, course_id)
        cached = await cache_get_json(cache_key)
        if cached is not None:
            return cast(dict, cached)

        published_ids = [
            row[0]
            for row in db.query(Lesson.id)
            .filter(Lesson.course_id == course_id, Lesson.status == LessonStatus.PUBLISHED)
            .all()
        ]
        total = len(published_ids)

        counts: dict[ProgressStatus, int] = {}
        if published_ids:
            rows = (
                db.query(LessonProgress.status, func.count(LessonProgress.id))
                .filter(
                    LessonProgress.user_id == user_id,
                    LessonProgress.lesson_id.in_(published_ids),
                )
                .group_by(LessonProgress.status)
                .all()
            )
            counts = {status: count for status, count in rows}

        completed = counts.get(ProgressStatus.COMPLETED, 0)
        in_progress = counts.get(ProgressStatus.IN_PROGRESS, 0)
        summary = {
            "total_lessons": total,
            "completed": completed,
            "in_progress": in_progress,
            "not_started": max(0, total - completed - in_progress),
            "percent_complete": round(completed / total * 100) if total else 0,
        }
        await cache_set_json(cache_key, summary, settings.PROGRESS_SUMMARY_CACHE_TTL_SECONDS)
        return summary

    @staticmethod
    async def _after_write(user_id: UUID, course_id: UUID, db: Session) -> None:
        await EnrollmentService.recalculate_progress(user_id, course_id, db)
        await cache_delete(
            student_course_key(course_id, user_id),
            progress_summary_key(user_id, course_id),
        )
