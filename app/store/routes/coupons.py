from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.rate_limit import limiter
from app.db.session import get_db
from app.store.schemas.coupon import CouponValidateRequest, CouponValidateResponse
from app.store.services.coupon_service import CouponService

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("/validate", response_model=CouponValidateResponse)
@limiter.limit("30/minute")
async def validate_coupon(
    request: Request,
    validate_request: CouponValidateRequest,
    db: Session = Depends(get_db),
) -> CouponValidateResponse:
    """
    Preview a coupon on the checkout page.

    The product's default discount comes off first and the coupon applies
    to what is left, the same order checkout uses.
    """
    price_after_default = max(0, validate_request.original_price - validate_request.default_discount)
    quote = CouponService(db).validate(
        validate_request.code, validate_request.resource_type, price_after_default
    )
    return CouponValidateResponse(
        code=quote.coupon.code,
        type=quote.coupon.type.value,
        value=quote.coupon.value,
        original_price=validate_request.original_price,
        price_after_default=price_after_default,
        discount_amount=quote.discount_amount,
        final_price=quote.final_price,
        total_savings=validate_request.original_price - quote.final_price,
    )
