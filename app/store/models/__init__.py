"""Store models: books, indicator subscriptions, course orders and coupons."""

from app.store.models.book import (
    Book,
    BookAccessStatus,
    BookOrder,
    BookOrderItem,
    OrderStatus,
    UserBookAccess,
)
from app.store.models.coupon import Coupon, CouponScope, CouponType
from app.store.models.course_order import CourseOrder
from app.store.models.indicator import (
    Indicator,
    IndicatorPayment,
    IndicatorSubscription,
    SubscriptionStatus,
)

__all__ = [
    "Book",
    "BookAccessStatus",
    "BookOrder",
    "BookOrderItem",
    "OrderStatus",
    "UserBookAccess",
    "Coupon",
    "CouponScope",
    "CouponType",
    "CourseOrder",
    "Indicator",
    "IndicatorPayment",
    "IndicatorSubscription",
    "SubscriptionStatus",
]
