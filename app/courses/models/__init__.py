"""Course models."""

from app.courses.models.course import Course, Lesson, LessonStatus
from app.courses.models.enrollment import Enrollment, EnrollmentSource, EnrollmentStatus
from app.courses.models.progress import LessonProgress, ProgressStatus

__all__ = [
    "Course",
    "Lesson",
    "LessonStatus",
    "Enrollment",
    "EnrollmentSource",
    "EnrollmentStatus",
    "LessonProgress",
    "ProgressStatus",
]
