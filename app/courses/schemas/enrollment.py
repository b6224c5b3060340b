from pydantic import BaseModel, EmailStr, Field

from app.core.datetime_utils import UTCDatetime
from app.courses.models.enrollment import EnrollmentSource, EnrollmentStatus


class AdminCreateEnrollmentRequest(BaseModel):
    email: EmailStr
    name: str | None = Field(None, max_length=255)


class AdminEnrollmentResponse(BaseModel):
    id: str
    user_id: str
    course_id: str
    user_email: str
    status: EnrollmentStatus
    source: EnrollmentSource
    progress_percent: float
    completed_lessons_count: int
    enrolled_at: UTCDatetime
    completed_at: UTCDatetime | None = None
    account_created: bool = False


class AdminEnrollmentListResponse(BaseModel):
    total: int
    enrollments: list[AdminEnrollmentResponse]
