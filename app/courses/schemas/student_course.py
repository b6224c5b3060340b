from pydantic import BaseModel

from app.core.datetime_utils import UTCDatetime
from app.courses.models.course import LessonStatus
from app.courses.models.enrollment import EnrollmentStatus
from app.courses.schemas.progress import CourseProgressSummary, LessonProgressBrief


class StudentLessonItem(BaseModel):
    id: str
    title: str
    description: str | None = None
    video_url: str | None = None
    duration_seconds: int
    sort_order: int
    status: LessonStatus
    is_locked: bool
    progress: LessonProgressBrief


class StudentCourseDetailResponse(BaseModel):
    id: str
    slug: str
    title: str
    description: str
    thumbnail_url: str | None = None
    lessons: list[StudentLessonItem]
    total_lessons: int
    progress: CourseProgressSummary
    auto_resume_lesson_id: str | None = None


class LessonNavItem(BaseModel):
    id: str
    title: str


class LessonNavigation(BaseModel):
    prev: LessonNavItem | None = None
    next: LessonNavItem | None = None
    current_index: int
    total: int


class StudentLessonResponse(BaseModel):
    id: str
    course_id: str
    title: str
    description: str | None = None
    video_url: str | None = None
    duration_seconds: int
    sort_order: int
    progress: LessonProgressBrief
    navigation: LessonNavigation


class StudentCourseListItem(BaseModel):
    course_id: str
    slug: str
    title: str
    thumbnail_url: str | None = None
    status: EnrollmentStatus
    progress_percent: float
    completed_lessons_count: int
    current_lesson_id: str | None = None
    enrolled_at: UTCDatetime
    last_activity_at: UTCDatetime | None = None
