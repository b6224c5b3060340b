from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.models.user import User
from app.auth.services.user_provisioning import BuyerContact
from app.core.rate_limit import limiter
from app.db.session import get_db
from app.store.models.indicator import IndicatorSubscription
from app.store.schemas.checkout import (
    CheckoutResponse,
    IndicatorSubscribeRequest,
    MySubscriptionResponse,
    SubscriptionStatusResponse,
    build_checkout_response,
)
from app.store.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/indicators", tags=["indicators"])


def _status_response(subscription: IndicatorSubscription) -> SubscriptionStatusResponse:
    return SubscriptionStatusResponse(
        subscription_id=subscription.id,
        indicator_id=subscription.indicator_id,
        transfer_code=subscription.transfer_code,
        status=subscription.status.value,
        amount=subscription.total_amount,
        auto_renew=subscription.auto_renew,
        is_active=subscription.is_currently_active,
        start_at=subscription.start_at,
        end_at=subscription.end_at,
        created_at=subscription.created_at,
    )


@router.post("/subscribe", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def subscribe(
    request: Request,
    subscribe_request: IndicatorSubscribeRequest,
    db: Session = Depends(get_db),
) -> CheckoutResponse:
    result = await SubscriptionService(db).checkout(
        subscribe_request.indicator_id,
        BuyerContact(
            email=subscribe_request.email,
            name=subscribe_request.name,
            phone=subscribe_request.phone,
        ),
        coupon_code=subscribe_request.coupon_code,
        extra_metadata={"auto_renew": subscribe_request.auto_renew},
    )
    return build_checkout_response(result)


@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    subscription_id: UUID, db: Session = Depends(get_db)
) -> SubscriptionStatusResponse:
    return _status_response(SubscriptionService(db).get_order(subscription_id))


@router.delete("/subscriptions/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_subscription(subscription_id: UUID, db: Session = Depends(get_db)) -> None:
    """Cancel an unpaid subscription; active ones simply run out."""
    SubscriptionService(db).cancel(subscription_id)


@router.get("/my-subscriptions", response_model=list[MySubscriptionResponse])
async def get_my_subscriptions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[MySubscriptionResponse]:
    subscriptions = SubscriptionService(db).get_my_subscriptions(current_user.id)
    return [
        MySubscriptionResponse(
            subscription_id=sub.id,
            indicator_id=sub.indicator_id,
            indicator_name=sub.indicator.name,
            status=sub.status.value,
            is_active=sub.is_currently_active,
            start_at=sub.start_at,
            end_at=sub.end_at,
        )
        for sub in subscriptions
    ]
