from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.models.user import User
from app.courses.dependencies import RequireCourseEnrollment, RequireLessonInCourse
from app.courses.models import LessonProgress
from app.courses.schemas.progress import (
    CourseProgressSummary,
    LessonProgressResponse,
    ProgressUpdateRequest,
)
from app.courses.schemas.student_course import (
    StudentCourseDetailResponse,
    StudentCourseListItem,
    StudentLessonResponse,
)
from app.courses.services.progress_calculator import ProgressReport
from app.courses.services.progress_service import ProgressService
from app.courses.services.student_course_service import StudentCourseService
from app.db.session import get_db

router = APIRouter()


def _progress_response(progress: LessonProgress) -> LessonProgressResponse:
    return LessonProgressResponse(
        id=str(progress.id),
        user_id=str(progress.user_id),
        course_id=str(progress.course_id),
        lesson_id=str(progress.lesson_id),
        status=progress.status,
        watch_time=progress.watch_time,
        last_position=progress.last_position,
        duration=progress.duration,
        progress_percent=progress.progress_percent,
        watched_segments=list(progress.watched_segments or []),
        started_at=progress.started_at,
        completed_at=progress.completed_at,
        updated_at=progress.updated_at,
    )


@router.get("/courses", response_model=list[StudentCourseListItem])
async def list_my_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[StudentCourseListItem]:
    """Courses the current user is enrolled in, with their rollup progress."""
    return StudentCourseService.list_my_courses(current_user, db)


@router.get("/courses/{course_id}", response_model=StudentCourseDetailResponse)
async def get_course_detail(
    course_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> StudentCourseDetailResponse:
    """Course outline with per-lesson progress, lock flags and the resume target."""
    return await StudentCourseService.get_course_detail(current_user, course_id, db)


@router.get("/courses/{course_id}/lessons/{lesson_id}", response_model=StudentLessonResponse)
async def get_lesson(
    course_id: UUID,
    lesson_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> StudentLessonResponse:
    return await StudentCourseService.open_lesson(current_user, course_id, lesson_id, db)


@router.patch(
    "/courses/{course_id}/lessons/{lesson_id}/progress",
    response_model=LessonProgressResponse,
    dependencies=[Depends(RequireCourseEnrollment()), Depends(RequireLessonInCourse())],
)
async def update_lesson_progress(
    course_id: UUID,
    lesson_id: UUID,
    request: ProgressUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LessonProgressResponse:
    """Apply a player progress report to the lesson."""
    report = ProgressReport(
        watched_segments=[s.model_dump() for s in request.watched_segments]
        if request.watched_segments is not None
        else None,
        watch_time=request.watch_time,
        duration=request.duration,
        completed=request.completed,
        status=request.status,
    )
    progress = await ProgressService.update_progress(
        current_user.id, lesson_id, report, db, last_position=request.last_position
    )
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Chưa có tiến độ cho bài học này",
        )
    return _progress_response(progress)


@router.get("/courses/{course_id}/progress", response_model=CourseProgressSummary)
async def get_course_progress(
    course_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CourseProgressSummary:
    return await StudentCourseService.get_progress(current_user, course_id, db)
