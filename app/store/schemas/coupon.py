from pydantic import BaseModel, Field

from app.store.models.coupon import CouponScope


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    resource_type: CouponScope
    original_price: int = Field(..., ge=0)
    default_discount: int = Field(default=0, ge=0, description="Product's own discount, VND")


class CouponValidateResponse(BaseModel):
    valid: bool = True
    code: str
    type: str
    value: int
    original_price: int
    price_after_default: int
    discount_amount: int
    final_price: int
    total_savings: int
