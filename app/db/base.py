"""
Database base module - imports all models for Alembic migration detection.

This module imports all SQLAlchemy models to ensure they are registered
with Alembic for automatic migration generation. While the imports appear
unused, they are essential for the migration system to work properly.
"""

from app.auth.models.user import User
from app.courses.models.course import Course, Lesson
from app.courses.models.enrollment import Enrollment
from app.courses.models.progress import LessonProgress
from app.db.session import Base
from app.notifications.models.processed_event import ProcessedEvent
from app.sales.models.saler import Commission, SalerCourseCommission, SalerDetails
from app.store.models.book import Book, BookOrder, BookOrderItem, UserBookAccess
from app.store.models.coupon import Coupon
from app.store.models.course_order import CourseOrder
from app.store.models.indicator import Indicator, IndicatorPayment, IndicatorSubscription

# Export all models for Alembic
__all__ = [
    "Base",
    "User",
    "Course",
    "Lesson",
    "Enrollment",
    "LessonProgress",
    "ProcessedEvent",
    "Commission",
    "SalerCourseCommission",
    "SalerDetails",
    "Book",
    "BookOrder",
    "BookOrderItem",
    "UserBookAccess",
    "Coupon",
    "CourseOrder",
    "Indicator",
    "IndicatorPayment",
    "IndicatorSubscription",
]
