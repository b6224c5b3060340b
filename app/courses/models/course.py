import enum
import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utcnow
from app.db.session import Base


class LessonStatus(str, enum.Enum):
    PUBLISHED = "published"
    DRAFT = "draft"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    slug: Mapped[str] = mapped_column(unique=True, index=True)
    title: Mapped[str] = mapped_column()
    description: Mapped[str] = mapped_column(default="")
    thumbnail_url: Mapped[str | None] = mapped_column(default=None)
    price: Mapped[int] = mapped_column(default=0)  # VND
    discount_percentage: Mapped[int] = mapped_column(default=0)
    is_published: Mapped[bool] = mapped_column(default=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    lessons = relationship(
        "Lesson",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Lesson.sort_order",
    )
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, slug={self.slug}, title={self.title})>"


class Lesson(Base):
    __tablename__ = "lessons"
    __table_args__ = (Index("ix_lessons_course_order", "course_id", "sort_order"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    course_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column()
    description: Mapped[str | None] = mapped_column(default=None)
    video_url: Mapped[str | None] = mapped_column(default=None)
    duration_seconds: Mapped[int] = mapped_column(default=0)
    status: Mapped[LessonStatus] = mapped_column(
        Enum(LessonStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=LessonStatus.PUBLISHED,
    )
    sort_order: Mapped[int] = mapped_column(default=0)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    course = relationship("Course", back_populates="lessons")
    progress_records = relationship(
        "LessonProgress", back_populates="lesson", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Lesson(id={self.id}, title={self.title}, course_id={self.course_id})>"
