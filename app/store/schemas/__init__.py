from app.store.schemas.checkout import (
    BookCheckoutRequest,
    CheckoutResponse,
    CourseCheckoutRequest,
    IndicatorSubscribeRequest,
    MyBookResponse,
    MySubscriptionResponse,
    OrderStatusResponse,
    PricingResponse,
    SubscriptionStatusResponse,
)
from app.store.schemas.coupon import CouponValidateRequest, CouponValidateResponse

__all__ = [
    "BookCheckoutRequest",
    "CheckoutResponse",
    "CouponValidateRequest",
    "CouponValidateResponse",
    "CourseCheckoutRequest",
    "IndicatorSubscribeRequest",
    "MyBookResponse",
    "MySubscriptionResponse",
    "OrderStatusResponse",
    "PricingResponse",
    "SubscriptionStatusResponse",
]
