import enum
import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utcnow
from app.db.session import Base


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    COMPLETED = "completed"


class EnrollmentSource(str, enum.Enum):
    PAYMENT = "payment"
    ADMIN = "admin"


class Enrollment(Base):
    """A user's access to a course plus the denormalised progress rollup."""

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_user_course_enrollment"),
        Index("ix_enrollments_user_course", "user_id", "course_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[EnrollmentStatus] = mapped_column(
        Enum(EnrollmentStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=EnrollmentStatus.ACTIVE,
        index=True,
    )
    source: Mapped[EnrollmentSource] = mapped_column(
        Enum(EnrollmentSource, values_callable=lambda obj: [e.value for e in obj]),
        default=EnrollmentSource.PAYMENT,
    )
    order_id: Mapped[uuid.UUID | None] = mapped_column(default=None)
    enrolled_at: Mapped[datetime] = mapped_column(default=utcnow)

    progress_percent: Mapped[float] = mapped_column(default=0.0)
    completed_lessons_count: Mapped[int] = mapped_column(default=0)
    current_lesson_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("lessons.id", ondelete="SET NULL"), default=None
    )
    last_activity_at: Mapped[datetime | None] = mapped_column(default=None)
    completed_at: Mapped[datetime | None] = mapped_column(default=None)

    user = relationship("User", backref="enrollments")
    course = relationship("Course", back_populates="enrollments")

    @property
    def grants_access(self) -> bool:
        return self.status in (EnrollmentStatus.ACTIVE, EnrollmentStatus.COMPLETED)

    def __repr__(self) -> str:
        return f"<Enrollment(id={self.id}, user_id={self.user_id}, course_id={self.course_id})>"
