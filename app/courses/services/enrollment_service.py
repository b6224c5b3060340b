import logging
from typing import cast
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from app.core.datetime_utils import utcnow
from app.core.exceptions import NotFoundError
from app.core.redis import (
    ANALYTICS_CACHE_PATTERN,
    cache_delete,
    cache_delete_pattern,
    student_course_key,
)
from app.courses.models import (
    Course,
    Enrollment,
    EnrollmentSource,
    EnrollmentStatus,
    Lesson,
    LessonProgress,
    LessonStatus,
    ProgressStatus,
)

logger = logging.getLogger(__name__)


class EnrollmentService:
    @staticmethod
    def get_user_enrollment(user_id: UUID, course_id: UUID, db: Session) -> Enrollment | None:
        """Get user's enrollment for a specific course."""
        result = (
            db.query(Enrollment)
            .filter(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
            .first()
        )
        return cast(Enrollment | None, result)

    @staticmethod
    def is_enrolled(user_id: UUID, course_id: UUID, db: Session) -> bool:
        """Active and completed enrollments grant access; suspended ones do not."""
        enrollment = EnrollmentService.get_user_enrollment(user_id, course_id, db)
        return enrollment is not None and enrollment.grants_access

    @staticmethod
    def grant_enrollment(
        user_id: UUID,
        course_id: UUID,
        db: Session,
        source: EnrollmentSource = EnrollmentSource.PAYMENT,
        order_id: UUID | None = None,
    ) -> Enrollment:
        """
        Give a user access to a course.

        Idempotent: an existing active enrollment is returned unchanged and a
        suspended one is reactivated. The caller owns the transaction.
        """
        enrollment = EnrollmentService.get_user_enrollment(user_id, course_id, db)
        if enrollment:
            if enrollment.status == EnrollmentStatus.SUSPENDED:
                enrollment.status = EnrollmentStatus.ACTIVE
                enrollment.source = source
                enrollment.order_id = order_id or enrollment.order_id
                logger.info(
                    "enrollment_reactivated user_id=%s course_id=%s", user_id, course_id
                )
            return enrollment

        enrollment = Enrollment(
            user_id=user_id,
            course_id=course_id,
            status=EnrollmentStatus.ACTIVE,
            source=source,
            order_id=order_id,
            enrolled_at=utcnow(),
        )
        db.add(enrollment)
        db.flush()
        logger.info(
            "enrollment_granted user_id=%s course_id=%s source=%s",
            user_id,
            course_id,
            source.value,
        )
        return enrollment

    @staticmethod
    def suspend_enrollment(user_id: UUID, course_id: UUID, db: Session) -> Enrollment:
        enrollment = EnrollmentService.get_user_enrollment(user_id, course_id, db)
        if not enrollment:
            raise NotFoundError("Không tìm thấy đăng ký khóa học", resource="enrollment")
        enrollment.status = EnrollmentStatus.SUSPENDED
        db.commit()
        db.refresh(enrollment)
        return enrollment

    @staticmethod
    async def recalculate_progress(user_id: UUID, course_id: UUID, db: Session) -> Enrollment | None:
        """
        Refresh the enrollment rollup from live lesson-progress counts.

        Counts are re-read on every call, so concurrent updates converge on
        the same values. Without an enrollment (admin preview) nothing is
        written.
        """
        enrollment = EnrollmentService.get_user_enrollment(user_id, course_id, db)
        if enrollment is None:
            return None

        published_ids = [
            row[0]
            for row in db.query(Lesson.id)
            .filter(Lesson.course_id == course_id, Lesson.status == LessonStatus.PUBLISHED)
            .all()
        ]
        total = len(published_ids)

        completed = 0
        if published_ids:
            completed = (
                db.query(LessonProgress)
                .filter(
                    LessonProgress.user_id == user_id,
                    LessonProgress.lesson_id.in_(published_ids),
                    LessonProgress.status == ProgressStatus.COMPLETED,
                )
                .count()
            )

        latest = (
            db.query(LessonProgress.lesson_id)
            .filter(LessonProgress.user_id == user_id, LessonProgress.course_id == course_id)
            .order_by(LessonProgress.updated_at.desc())
            .first()
        )

        now = utcnow()
        enrollment.progress_percent = round(completed / total * 100, 1) if total else 0.0
        enrollment.completed_lessons_count = completed
        enrollment.current_lesson_id = latest[0] if latest else enrollment.current_lesson_id
        enrollment.last_activity_at = now
        if total and completed >= total and enrollment.status == EnrollmentStatus.ACTIVE:
            enrollment.status = EnrollmentStatus.COMPLETED
            if enrollment.completed_at is None:
                enrollment.completed_at = now
            logger.info("course_completed user_id=%s course_id=%s", user_id, course_id)

        db.commit()
        db.refresh(enrollment)

        await cache_delete_pattern(ANALYTICS_CACHE_PATTERN)
        await cache_delete(student_course_key(course_id, user_id))
        return enrollment

    @staticmethod
    def list_user_enrollments(user_id: UUID, db: Session) -> list[Enrollment]:
        """Enrollments granting access, newest activity first, for published courses."""
        enrollments = (
            db.query(Enrollment)
            .options(joinedload(Enrollment.course))
            .join(Course, Enrollment.course_id == Course.id)
            .filter(
                Enrollment.user_id == user_id,
                Enrollment.status != EnrollmentStatus.SUSPENDED,
                Course.is_published == True,  # noqa: E712
            )
            .order_by(Enrollment.enrolled_at.desc())
            .all()
        )
        return cast(list[Enrollment], enrollments)
