from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.auth.services.user_provisioning import BuyerContact
from app.core.rate_limit import limiter
from app.db.session import get_db
from app.store.schemas.checkout import (
    CheckoutResponse,
    CourseCheckoutRequest,
    OrderStatusResponse,
    build_checkout_response,
)
from app.store.services.course_checkout_service import CourseCheckoutService

router = APIRouter(prefix="/courses", tags=["course-checkout"])


@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def checkout_course(
    request: Request,
    checkout_request: CourseCheckoutRequest,
    db: Session = Depends(get_db),
) -> CheckoutResponse:
    """Course purchase; ``ref`` attributes the sale to an affiliate."""
    result = await CourseCheckoutService(db).checkout_course(
        checkout_request.course_id,
        BuyerContact(
            email=checkout_request.email,
            name=checkout_request.name,
            phone=checkout_request.phone,
        ),
        coupon_code=checkout_request.coupon_code,
        ref_code=checkout_request.ref,
    )
    return build_checkout_response(result)


@router.get("/orders/{order_id}", response_model=OrderStatusResponse)
async def get_course_order_status(
    order_id: UUID, db: Session = Depends(get_db)
) -> OrderStatusResponse:
    order = CourseCheckoutService(db).get_order(order_id)
    return OrderStatusResponse(
        order_id=order.id,
        transfer_code=order.transfer_code,
        status=order.status.value,
        amount=order.amount,
        qr_code_url=order.qr_code_url,
        paid_at=order.paid_at,
        created_at=order.created_at,
    )


@router.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_course_order(order_id: UUID, db: Session = Depends(get_db)) -> None:
    CourseCheckoutService(db).cancel(order_id)
