"""Course schemas."""

from app.courses.schemas.enrollment import (
    AdminCreateEnrollmentRequest,
    AdminEnrollmentListResponse,
    AdminEnrollmentResponse,
)
from app.courses.schemas.progress import (
    CourseProgressSummary,
    LessonProgressBrief,
    LessonProgressResponse,
    ProgressUpdateRequest,
    WatchedSegment,
)
from app.courses.schemas.student_course import (
    LessonNavigation,
    LessonNavItem,
    StudentCourseDetailResponse,
    StudentCourseListItem,
    StudentLessonItem,
    StudentLessonResponse,
)

__all__ = [
    "AdminCreateEnrollmentRequest",
    "AdminEnrollmentListResponse",
    "AdminEnrollmentResponse",
    "CourseProgressSummary",
    "LessonProgressBrief",
    "LessonProgressResponse",
    "ProgressUpdateRequest",
    "WatchedSegment",
    "LessonNavigation",
    "LessonNavItem",
    "StudentCourseDetailResponse",
    "StudentCourseListItem",
    "StudentLessonItem",
    "StudentLessonResponse",
]
