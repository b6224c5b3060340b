"""
Pydantic schemas for bank-transfer checkout.
"""

import uuid
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.datetime_utils import UTCDatetime


class BuyerInfo(BaseModel):
    email: EmailStr = Field(..., description="Buyer email; an account is created if missing")
    name: str = Field(..., min_length=2, max_length=255)
    phone: str | None = Field(default=None, max_length=20)
    coupon_code: str | None = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Họ tên phải có ít nhất 2 ký tự")
        return v


class BookCheckoutRequest(BuyerInfo):
    book_id: uuid.UUID


class IndicatorSubscribeRequest(BuyerInfo):
    indicator_id: uuid.UUID
    auto_renew: bool = False


class CourseCheckoutRequest(BuyerInfo):
    course_id: uuid.UUID
    ref: str | None = Field(default=None, max_length=50, description="Affiliate code")


class PricingResponse(BaseModel):
    original_price: int
    default_discount: int
    coupon_code: str | None = None
    coupon_discount: int = 0
    payment_fee: int
    total: int


class CheckoutResponse(BaseModel):
    """Order created or refreshed; pay by transferring ``total`` with ``transfer_code``."""

    order_id: uuid.UUID
    transfer_code: str
    qr_code_url: str
    bank_account: str
    bank_code: str
    amount: int
    pricing: PricingResponse
    is_new_user: bool


class OrderStatusResponse(BaseModel):
    order_id: uuid.UUID
    transfer_code: str | None
    status: str
    amount: int
    qr_code_url: str | None = None
    paid_at: UTCDatetime | None = None
    created_at: UTCDatetime


class SubscriptionStatusResponse(BaseModel):
    subscription_id: uuid.UUID
    indicator_id: uuid.UUID
    transfer_code: str | None
    status: str
    amount: int
    auto_renew: bool
    is_active: bool
    start_at: UTCDatetime | None = None
    end_at: UTCDatetime | None = None
    created_at: UTCDatetime


class MyBookResponse(BaseModel):
    book_id: uuid.UUID
    title: str
    slug: str
    cover_url: str | None = None
    file_url: str | None = None
    granted_at: UTCDatetime


class BookDownloadResponse(BaseModel):
    book_id: uuid.UUID
    title: str
    file_url: str


class MySubscriptionResponse(BaseModel):
    subscription_id: uuid.UUID
    indicator_id: uuid.UUID
    indicator_name: str
    status: str
    is_active: bool
    start_at: UTCDatetime | None = None
    end_at: UTCDatetime | None = None


def build_checkout_response(result: Any) -> CheckoutResponse:
    """Response body for a ``CheckoutResult``."""
    pricing = result.pricing
    return CheckoutResponse(
        order_id=result.order.id,
        transfer_code=result.order.transfer_code,
        qr_code_url=result.qr.qr_url,
        bank_account=result.qr.bank.acc_no,
        bank_code=result.qr.bank.bank_code,
        amount=pricing.total,
        pricing=PricingResponse(
            original_price=pricing.original_price,
            default_discount=pricing.default_discount,
            coupon_code=pricing.coupon_code,
            coupon_discount=pricing.coupon_discount,
            payment_fee=pricing.payment_fee,
            total=pricing.total,
        ),
        is_new_user=result.is_new_user,
    )
