import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.auth.models.user import User
from app.core.config import settings
from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.redis import cache_get_json, cache_set_json, student_course_key
from app.courses.models import Course, Lesson, LessonProgress, LessonStatus
from app.courses.schemas.progress import CourseProgressSummary, LessonProgressBrief
from app.courses.schemas.student_course import (
    LessonNavigation,
    LessonNavItem,
    StudentCourseDetailResponse,
    StudentCourseListItem,
    StudentLessonItem,
    StudentLessonResponse,
)
from app.courses.services.enrollment_service import EnrollmentService
from app.courses.services.progress_service import ProgressService
from app.courses.services.unlock_service import (
    is_lesson_locked,
    resolve_locks,
    resume_lesson_id,
    sort_lessons,
)

logger = logging.getLogger(__name__)


def _brief(progress: LessonProgress | None) -> LessonProgressBrief:
    if progress is None:
        return LessonProgressBrief()
    return LessonProgressBrief(
        status=progress.status,
        watch_time=progress.watch_time,
        last_position=progress.last_position,
        progress_percent=progress.progress_percent,
    )


class StudentCourseService:
    """Read side of the learning area: course outline, lesson view, my courses."""

    @staticmethod
    def _get_course(course_id: UUID, db: Session) -> Course:
        course = db.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise NotFoundError("Khóa học không tồn tại", resource="course")
        return course

    @staticmethod
    def ensure_access(user: User, course_id: UUID, db: Session) -> None:
        if user.is_admin:
            return
        if not EnrollmentService.is_enrolled(user.id, course_id, db):
            raise ForbiddenError("Bạn chưa đăng ký khóa học này", code="NOT_ENROLLED")

    @staticmethod
    def _published_lessons(course_id: UUID, db: Session) -> list[Lesson]:
        lessons = (
            db.query(Lesson)
            .filter(Lesson.course_id == course_id, Lesson.status == LessonStatus.PUBLISHED)
            .all()
        )
        return sort_lessons(lessons)

    @staticmethod
    async def get_course_detail(
        user: User, course_id: UUID, db: Session
    ) -> StudentCourseDetailResponse:
        course = StudentCourseService._get_course(course_id, db)
        StudentCourseService.ensure_access(user, course_id, db)

        cache_key = student_course_key(course_id, user.id)
        cached = await cache_get_json(cache_key)
        if cached is not None:
            return StudentCourseDetailResponse.model_validate(cached)

        lessons = StudentCourseService._published_lessons(course_id, db)
        progress_map = ProgressService.get_progress_map(user.id, [lesson.id for lesson in lessons], db)
        states = resolve_locks(lessons, progress_map)
        summary = await ProgressService.get_course_progress_summary(user.id, course_id, db)
        resume_id = resume_lesson_id(states)

        result = StudentCourseDetailResponse(
            id=str(course.id),
            slug=course.slug,
            title=course.title,
            description=course.description,
            thumbnail_url=course.thumbnail_url,
            lessons=[
                StudentLessonItem(
                    id=str(state.lesson.id),
                    title=state.lesson.title,
                    description=state.lesson.description,
                    video_url=state.lesson.video_url,
                    duration_seconds=state.lesson.duration_seconds,
                    sort_order=state.lesson.sort_order,
                    status=state.lesson.status,
                    is_locked=state.is_locked,
                    progress=_brief(state.progress),
                )
                for state in states
            ],
            total_lessons=len(lessons),
            progress=CourseProgressSummary(**summary),
            auto_resume_lesson_id=str(resume_id) if resume_id else None,
        )

        await cache_set_json(
            cache_key, result.model_dump(mode="json"), settings.STUDENT_COURSE_CACHE_TTL_SECONDS
        )
        return result

    @staticmethod
    async def open_lesson(
        user: User, course_id: UUID, lesson_id: UUID, db: Session
    ) -> StudentLessonResponse:
        """
        Return a lesson for playback and mark it as started.

        Non-admins cannot open draft lessons or lessons still locked behind an
        unfinished predecessor.
        """
        StudentCourseService._get_course(course_id, db)
        StudentCourseService.ensure_access(user, course_id, db)

        lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
        if not lesson or lesson.course_id != course_id:
            raise NotFoundError("Bài học không tồn tại", resource="lesson")

        lessons = StudentCourseService._published_lessons(course_id, db)
        if not user.is_admin:
            if lesson.status != LessonStatus.PUBLISHED:
                raise ForbiddenError("Bài học này chưa được công khai", code="LESSON_DRAFT")
            progress_map = ProgressService.get_progress_map(
                user.id, [item.id for item in lessons], db
            )
            if is_lesson_locked(lessons, progress_map, lesson.id):
                raise ForbiddenError(
                    "Bạn cần hoàn thành bài học trước để mở khóa bài này", code="LESSON_LOCKED"
                )

        progress = await ProgressService.mark_started(user.id, course_id, lesson.id, db)

        index = next((i for i, item in enumerate(lessons) if item.id == lesson.id), -1)
        prev_lesson = lessons[index - 1] if index > 0 else None
        next_lesson = lessons[index + 1] if 0 <= index < len(lessons) - 1 else None

        return StudentLessonResponse(
            id=str(lesson.id),
            course_id=str(lesson.course_id),
            title=lesson.title,
            description=lesson.description,
            video_url=lesson.video_url,
            duration_seconds=lesson.duration_seconds,
            sort_order=lesson.sort_order,
            progress=_brief(progress),
            navigation=LessonNavigation(
                prev=LessonNavItem(id=str(prev_lesson.id), title=prev_lesson.title)
                if prev_lesson
                else None,
                next=LessonNavItem(id=str(next_lesson.id), title=next_lesson.title)
                if next_lesson
                else None,
                current_index=index + 1,
                total=len(lessons),
            ),
        )

    @staticmethod
    async def get_progress(user: User, course_id: UUID, db: Session) -> CourseProgressSummary:
        StudentCourseService._get_course(course_id, db)
        StudentCourseService.ensure_access(user, course_id, db)
        summary = await ProgressService.get_course_progress_summary(user.id, course_id, db)
        return CourseProgressSummary(**summary)

    @staticmethod
    def list_my_courses(user: User, db: Session) -> list[StudentCourseListItem]:
        return [
            StudentCourseListItem(
                course_id=str(enrollment.course_id),
                slug=enrollment.course.slug,
                title=enrollment.course.title,
                thumbnail_url=enrollment.course.thumbnail_url,
                status=enrollment.status,
                progress_percent=enrollment.progress_percent,
                completed_lessons_count=enrollment.completed_lessons_count,
                current_lesson_id=str(enrollment.current_lesson_id)
                if enrollment.current_lesson_id
                else None,
                enrolled_at=enrollment.enrolled_at,
                last_activity_at=enrollment.last_activity_at,
            )
            for enrollment in EnrollmentService.list_user_enrollments(user.id, db)
        ]
