from datetime import datetime
from decimal import Decimal

from faker import Faker
from sqlalchemy.orm import Session

from app.auth.models.user import User, UserRole
from app.core.datetime_utils import utcnow
from app.core.security import get_password_hash
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
from app.sales.models.saler import SalerCourseCommission, SalerDetails
from app.store.models.book import Book
from app.store.models.coupon import Coupon, CouponScope, CouponType
from app.store.models.indicator import Indicator

fake = Faker()


def create_user_factory(
    db_session: Session,
    email: str | None = None,
    password: str = "testpass123",
    name: str | None = None,
    role: str = "user",
    is_active: bool = True,
    must_change_password: bool = False,
) -> User:
    """
    Factory function to create test users.

    Args:
        db_session: Database session
        email: User email (generates random if None)
        password: Plain text password
        name: User name (generates random if None)
        role: "user", "saler" or "admin"
        is_active: Whether user is active
        must_change_password: Whether the user still has a temporary password

    Returns:
        Created User instance
    """
    user = User(
        email=(email or fake.email()).lower(),
        hashed_password=get_password_hash(password),
        name=name or fake.name(),
        role=UserRole(role),
        is_active=is_active,
        must_change_password=must_change_password,
    )

    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)

    return user


def create_course_factory(
    db_session: Session,
    lessons: int = 3,
    price: int = 500_000,
    discount_percentage: int = 0,
    is_published: bool = True,
    duration_seconds: int = 100,
) -> Course:
    """Create a course with ``lessons`` published lessons, sort_order 0..n-1."""
    course = Course(
        slug=fake.unique.slug(),
        title=fake.sentence(nb_words=4),
        description=fake.text(max_nb_chars=120),
        price=price,
        discount_percentage=discount_percentage,
        is_published=is_published,
    )
    db_session.add(course)
    db_session.flush()

    for index in range(lessons):
        db_session.add(
            Lesson(
                course_id=course.id,
                title=f"Bài {index + 1}",
                video_url=f"https://video.example.com/{course.slug}/{index + 1}",
                duration_seconds=duration_seconds,
                status=LessonStatus.PUBLISHED,
                sort_order=index,
            )
        )
    db_session.commit()
    db_session.refresh(course)
    return course


def create_enrollment_factory(
    db_session: Session,
    user: User,
    course: Course,
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
) -> Enrollment:
    enrollment = Enrollment(
        user_id=user.id,
        course_id=course.id,
        status=status,
        source=EnrollmentSource.ADMIN,
    )
    db_session.add(enrollment)
    db_session.commit()
    db_session.refresh(enrollment)
    return enrollment


def create_progress_factory(
    db_session: Session,
    user: User,
    lesson: Lesson,
    status: ProgressStatus = ProgressStatus.NOT_STARTED,
    duration: int = 0,
) -> LessonProgress:
    now = utcnow()
    progress = LessonProgress(
        user_id=user.id,
        course_id=lesson.course_id,
        lesson_id=lesson.id,
        status=status,
        duration=duration,
        started_at=now if status != ProgressStatus.NOT_STARTED else None,
        completed_at=now if status == ProgressStatus.COMPLETED else None,
    )
    db_session.add(progress)
    db_session.commit()
    db_session.refresh(progress)
    return progress


def create_book_factory(
    db_session: Session, price: int = 199_000, discount_percentage: int = 0
) -> Book:
    book = Book(
        slug=fake.unique.slug(),
        title=fake.sentence(nb_words=3),
        author=fake.name(),
        price=price,
        discount_percentage=discount_percentage,
        file_url="https://files.example.com/book.pdf",
    )
    db_session.add(book)
    db_session.commit()
    db_session.refresh(book)
    return book


def create_indicator_factory(db_session: Session, price: int = 300_000) -> Indicator:
    indicator = Indicator(slug=fake.unique.slug(), name=fake.word().title(), price=price)
    db_session.add(indicator)
    db_session.commit()
    db_session.refresh(indicator)
    return indicator


def create_coupon_factory(
    db_session: Session,
    code: str | None = None,
    type: CouponType = CouponType.PERCENTAGE,
    value: int = 10,
    applicable_to: list[CouponScope] | None = None,
    usage_limit: int = 0,
    usage_count: int = 0,
    is_active: bool = True,
    expires_at: datetime | None = None,
) -> Coupon:
    coupon = Coupon(
        code=(code or fake.unique.bothify("SALE####")).upper(),
        type=type,
        value=value,
        applicable_to=[s.value for s in (applicable_to or [CouponScope.ALL])],
        usage_limit=usage_limit,
        usage_count=usage_count,
        is_active=is_active,
        expires_at=expires_at,
    )
    db_session.add(coupon)
    db_session.commit()
    db_session.refresh(coupon)
    return coupon


def create_saler_factory(
    db_session: Session,
    code: str = "SALER01",
    default_rate: Decimal = Decimal("10"),
    email: str | None = None,
) -> SalerDetails:
    user = create_user_factory(db_session, email=email, role="saler")
    saler = SalerDetails(user_id=user.id, code_saler=code, default_commission_rate=default_rate)
    db_session.add(saler)
    db_session.commit()
    db_session.refresh(saler)
    return saler


def set_course_rate(
    db_session: Session, saler: SalerDetails, course: Course, rate: Decimal
) -> SalerCourseCommission:
    override = SalerCourseCommission(
        saler_details_id=saler.id, course_id=course.id, commission_rate=rate
    )
    db_session.add(override)
    db_session.commit()
    return override
