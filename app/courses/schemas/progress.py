from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.datetime_utils import UTCDatetime
from app.courses.models.progress import ProgressStatus

# Longest media a lesson can carry; keeps reports inside the INTEGER columns
MAX_MEDIA_SECONDS = 24 * 60 * 60


class WatchedSegment(BaseModel):
    start: float = Field(..., ge=0, le=MAX_MEDIA_SECONDS, allow_inf_nan=False)
    end: float = Field(..., ge=0, le=MAX_MEDIA_SECONDS, allow_inf_nan=False)


class ProgressUpdateRequest(BaseModel):
    """Player report; every field is optional and only sent fields are applied."""

    watch_time: int | None = Field(
        None, ge=0, le=MAX_MEDIA_SECONDS, description="Legacy running total in seconds"
    )
    last_position: int | None = Field(None, ge=0, le=MAX_MEDIA_SECONDS)
    duration: int | None = Field(None, ge=0, le=MAX_MEDIA_SECONDS)
    watched_segments: list[WatchedSegment] | None = None
    completed: bool | None = None
    status: ProgressStatus | None = None

    @model_validator(mode="after")
    def _segments_are_ordered(self) -> "ProgressUpdateRequest":
        for segment in self.watched_segments or []:
            if segment.end < segment.start:
                raise ValueError("Đoạn xem không hợp lệ: end phải lớn hơn start")
        return self


class LessonProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    course_id: str
    lesson_id: str
    status: ProgressStatus
    watch_time: int
    last_position: int
    duration: int
    progress_percent: float
    watched_segments: list[dict]
    started_at: UTCDatetime | None = None
    completed_at: UTCDatetime | None = None
    updated_at: UTCDatetime


class LessonProgressBrief(BaseModel):
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    watch_time: int = 0
    last_position: int = 0
    progress_percent: float = 0.0


class CourseProgressSummary(BaseModel):
    total_lessons: int
    completed: int
    in_progress: int
    not_started: int
    percent_complete: int
