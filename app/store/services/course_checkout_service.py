import logging
import uuid
from typing import Any, cast

from app.auth.models.user import User
from app.auth.services.user_provisioning import BuyerContact
from app.courses.models import Course
from app.sales.models.saler import SalerDetails
from app.store.models.book import OrderStatus
from app.store.models.coupon import CouponScope
from app.store.models.course_order import CourseOrder
from app.store.services.checkout_service import CheckoutResult, CheckoutService, PriceBreakdown

logger = logging.getLogger(__name__)


class CourseCheckoutService(CheckoutService):
    """Course purchases, optionally attributed to an affiliate via a ``ref`` code."""

    transfer_prefix = "CZLP"
    coupon_scope = CouponScope.COURSE
    order_model = CourseOrder
    product_column = "course_id"
    amount_column = "amount"
    not_found_message = "Khóa học không tồn tại"

    def load_product(self, product_id: uuid.UUID) -> Course | None:
        return cast(
            Course | None,
            self.db.query(Course)
            .filter(Course.id == product_id, Course.is_published == True)  # noqa: E712
            .first(),
        )

    def pending_status(self) -> OrderStatus:
        return OrderStatus.PENDING

    def new_order(self, user: User, product: Any) -> CourseOrder:
        return CourseOrder(user_id=user.id, course_id=product.id, status=OrderStatus.PENDING)

    def fill_order(self, order: Any, product: Any, pricing: PriceBreakdown) -> None:
        order.order_metadata = {**order.order_metadata, "course_title": product.title}
        ref_saler = order.order_metadata.get("saler_id")
        order.saler_id = uuid.UUID(ref_saler) if ref_saler else None

    def resolve_saler(self, ref_code: str | None) -> SalerDetails | None:
        if not ref_code or not ref_code.strip():
            return None
        saler = (
            self.db.query(SalerDetails)
            .filter(SalerDetails.code_saler == ref_code.strip().upper())
            .first()
        )
        if saler is None:
            logger.info("checkout_unknown_ref_code ref=%s", ref_code)
        return cast(SalerDetails | None, saler)

    async def checkout_course(
        self,
        course_id: uuid.UUID,
        contact: BuyerContact,
        coupon_code: str | None = None,
        ref_code: str | None = None,
    ) -> CheckoutResult:
        extra: dict[str, Any] = {}
        saler = self.resolve_saler(ref_code)
        if saler is not None:
            buyer_email = contact.email.strip().lower()
            if saler.user is not None and saler.user.email == buyer_email:
                logger.info("checkout_self_referral_ignored saler_id=%s", saler.user_id)
            else:
                extra = {"ref_code": saler.code_saler, "saler_id": str(saler.user_id)}
        return await self.checkout(course_id, contact, coupon_code, extra_metadata=extra)
