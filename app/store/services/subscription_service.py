import logging
import uuid
from typing import Any, cast

from app.auth.models.user import User
from app.core.datetime_utils import utcnow
from app.store.models.coupon import CouponScope
from app.store.models.indicator import Indicator, IndicatorSubscription, SubscriptionStatus
from app.store.services.checkout_service import CheckoutService, PriceBreakdown

logger = logging.getLogger(__name__)


class SubscriptionService(CheckoutService):
    """Indicator subscriptions: one paid period per confirmed transfer."""

    transfer_prefix = "INDP"
    coupon_scope = CouponScope.INDICATOR
    order_model = IndicatorSubscription
    product_column = "indicator_id"
    not_found_message = "Indicator không tồn tại"

    def load_product(self, product_id: uuid.UUID) -> Indicator | None:
        return cast(
            Indicator | None,
            self.db.query(Indicator)
            .filter(Indicator.id == product_id, Indicator.is_published == True)  # noqa: E712
            .first(),
        )

    def pending_status(self) -> SubscriptionStatus:
        return SubscriptionStatus.PENDING

    def new_order(self, user: User, product: Any) -> IndicatorSubscription:
        return IndicatorSubscription(
            user_id=user.id, indicator_id=product.id, status=SubscriptionStatus.PENDING
        )

    def fill_order(self, order: Any, product: Any, pricing: PriceBreakdown) -> None:
        order.auto_renew = bool(order.order_metadata.get("auto_renew", False))
        order.order_metadata = {**order.order_metadata, "indicator_name": product.name}

    def expire_lapsed(self, user_id: uuid.UUID) -> int:
        """Flip ACTIVE subscriptions whose window has ended to EXPIRED."""
        count = (
            self.db.query(IndicatorSubscription)
            .filter(
                IndicatorSubscription.user_id == user_id,
                IndicatorSubscription.status == SubscriptionStatus.ACTIVE,
                IndicatorSubscription.end_at < utcnow(),
            )
            .update(
                {IndicatorSubscription.status: SubscriptionStatus.EXPIRED},
                synchronize_session=False,
            )
        )
        if count:
            self.db.commit()
            logger.info("subscriptions_expired user_id=%s count=%s", user_id, count)
        return count

    def get_my_subscriptions(self, user_id: uuid.UUID) -> list[IndicatorSubscription]:
        self.expire_lapsed(user_id)
        rows = (
            self.db.query(IndicatorSubscription)
            .filter(
                IndicatorSubscription.user_id == user_id,
                IndicatorSubscription.status.in_(
                    [SubscriptionStatus.ACTIVE, SubscriptionStatus.EXPIRED]
                ),
            )
            .populate_existing()
            .order_by(IndicatorSubscription.created_at.desc())
            .all()
        )
        return cast(list[IndicatorSubscription], rows)
