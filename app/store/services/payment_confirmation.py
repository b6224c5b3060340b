"""Turning a received bank transfer into a paid order and an entitlement."""

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.datetime_utils import utcnow
from app.core.events import DomainEvent, EventBus, OrderPaid, PaymentConfirmed, event_bus
from app.core.exceptions import PaymentAmountMismatchError
from app.courses.models.enrollment import EnrollmentSource
from app.courses.services.enrollment_service import EnrollmentService
from app.store.models.book import BookOrder, OrderStatus
from app.store.models.course_order import CourseOrder
from app.store.models.indicator import (
    IndicatorPayment,
    IndicatorSubscription,
    SubscriptionStatus,
)
from app.store.services.coupon_service import CouponService
from app.store.services.entitlement_service import EntitlementService

logger = logging.getLogger(__name__)


class ProductType(str, enum.Enum):
    BOOK = "book"
    INDICATOR = "indicator"
    COURSE = "course"


TRANSFER_PREFIXES: dict[str, ProductType] = {
    "BZLP": ProductType.BOOK,
    "INDP": ProductType.INDICATOR,
    "CZLP": ProductType.COURSE,
}


def product_type_for(transfer_code: str) -> ProductType | None:
    return TRANSFER_PREFIXES.get(transfer_code[:4].upper())


@dataclass
class PaymentNotice:
    transfer_code: str
    amount: int
    transaction_id: str | None = None


@dataclass
class ConfirmationResult:
    status: str
    product_type: ProductType | None = None
    order_id: uuid.UUID | None = None
    message: str | None = None


class PaymentConfirmationService:
    """
    Confirm bank-transfer payments exactly once.

    The PENDING -> paid transition is a compare-and-swap UPDATE guarded by
    the current status, so only one of several concurrent deliveries of the
    same transfer gets to grant the entitlement and publish events.
    """

    def __init__(self, db: Session, bus: EventBus | None = None):
        self.db = db
        self.bus = bus or event_bus

    def _load(self, product_type: ProductType, code: str) -> Any:
        model = {
            ProductType.BOOK: BookOrder,
            ProductType.INDICATOR: IndicatorSubscription,
            ProductType.COURSE: CourseOrder,
        }[product_type]
        return self.db.query(model).filter(model.transfer_code == code).first()

    @staticmethod
    def _amount(product_type: ProductType, order: Any) -> int:
        return int(order.amount if product_type == ProductType.COURSE else order.total_amount)

    @staticmethod
    def _is_pending(product_type: ProductType, order: Any) -> bool:
        if product_type == ProductType.INDICATOR:
            return bool(order.status == SubscriptionStatus.PENDING)
        return bool(order.status == OrderStatus.PENDING)

    def _claim(self, product_type: ProductType, notice: PaymentNotice, now: datetime) -> bool:
        code = notice.transfer_code
        if product_type == ProductType.INDICATOR:
            updated = (
                self.db.query(IndicatorSubscription)
                .filter(
                    IndicatorSubscription.transfer_code == code,
                    IndicatorSubscription.status == SubscriptionStatus.PENDING,
                )
                .update(
                    {
                        IndicatorSubscription.status: SubscriptionStatus.ACTIVE,
                        IndicatorSubscription.start_at: now,
                        IndicatorSubscription.end_at: now
                        + timedelta(days=settings.SUBSCRIPTION_PERIOD_DAYS),
                        IndicatorSubscription.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            return updated == 1

        model: Any = BookOrder if product_type == ProductType.BOOK else CourseOrder
        updated = (
            self.db.query(model)
            .filter(model.transfer_code == code, model.status == OrderStatus.PENDING)
            .update(
                {
                    model.status: OrderStatus.PAID,
                    model.paid_at: now,
                    model.sepay_transaction_id: notice.transaction_id,
                    model.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def _grant(self, product_type: ProductType, order: Any, notice: PaymentNotice) -> None:
        if product_type == ProductType.BOOK:
            entitlements = EntitlementService(self.db)
            book_ids = [item.book_id for item in order.items] or [order.book_id]
            for book_id in book_ids:
                entitlements.grant_book_access(order.user_id, book_id, order_id=order.id)
        elif product_type == ProductType.INDICATOR:
            self.db.add(
                IndicatorPayment(
                    subscription_id=order.id,
                    amount=order.total_amount,
                    period_start=order.start_at,
                    period_end=order.end_at,
                    sepay_transaction_id=notice.transaction_id,
                    paid_at=order.start_at,
                )
            )
        else:
            EnrollmentService.grant_enrollment(
                order.user_id,
                order.course_id,
                self.db,
                source=EnrollmentSource.PAYMENT,
                order_id=order.id,
            )

    def _events(self, product_type: ProductType, order: Any, paid_at: datetime) -> list[DomainEvent]:
        product_id = {
            ProductType.BOOK: lambda: order.book_id,
            ProductType.INDICATOR: lambda: order.indicator_id,
            ProductType.COURSE: lambda: order.course_id,
        }[product_type]()
        amount = self._amount(product_type, order)
        events: list[DomainEvent] = [
            PaymentConfirmed(
                user_id=order.user_id,
                product_type=product_type.value,
                product_id=product_id,
                order_id=order.id,
                amount=amount,
                paid_at=paid_at,
            )
        ]
        if product_type == ProductType.COURSE:
            events.append(
                OrderPaid(
                    order_id=order.id,
                    user_id=order.user_id,
                    course_id=order.course_id,
                    saler_id=order.saler_id,
                    amount=amount,
                )
            )
        return events

    async def confirm(self, notice: PaymentNotice) -> ConfirmationResult:
        """
        Mark the order behind a transfer as paid and grant what was bought.

        Unknown codes and already-paid orders are acknowledged without
        changes, so the gateway can redeliver safely.

        Raises:
            PaymentAmountMismatchError: the transferred amount differs from the order total
        """
        code = notice.transfer_code.strip().upper()
        notice.transfer_code = code
        product_type = product_type_for(code)
        if product_type is None:
            logger.warning("payment_unknown_prefix transfer_code=%s", code)
            return ConfirmationResult(status="ignored", message="Unknown transfer code")

        order = self._load(product_type, code)
        if order is None:
            logger.warning("payment_order_not_found transfer_code=%s", code)
            return ConfirmationResult(
                status="ignored", product_type=product_type, message="Order not found"
            )

        if not self._is_pending(product_type, order):
            logger.info("payment_already_processed transfer_code=%s", code)
            return ConfirmationResult(
                status="already_processed", product_type=product_type, order_id=order.id
            )

        expected = self._amount(product_type, order)
        if notice.amount != expected:
            logger.warning(
                "payment_amount_mismatch transfer_code=%s expected=%s received=%s",
                code,
                expected,
                notice.amount,
            )
            raise PaymentAmountMismatchError(expected, notice.amount)

        now = utcnow()
        if not self._claim(product_type, notice, now):
            self.db.rollback()
            logger.info("payment_claim_lost transfer_code=%s", code)
            return ConfirmationResult(
                status="already_processed", product_type=product_type, order_id=order.id
            )

        self.db.refresh(order)
        self._grant(product_type, order, notice)
        self.db.commit()
        self.db.refresh(order)

        logger.info(
            "payment_confirmed transfer_code=%s product_type=%s order_id=%s amount=%s",
            code,
            product_type.value,
            order.id,
            expected,
        )

        coupon_code = (order.order_metadata or {}).get("coupon_code")
        if coupon_code:
            CouponService(self.db).record_usage(coupon_code)

        for event in self._events(product_type, order, now):
            await self.bus.publish(event, self.db)

        return ConfirmationResult(status="confirmed", product_type=product_type, order_id=order.id)
