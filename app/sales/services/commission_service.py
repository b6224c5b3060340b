import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.events import EventBus, OrderPaid
from app.sales.models.saler import (
    Commission,
    CommissionStatus,
    SalerCourseCommission,
    SalerDetails,
)

logger = logging.getLogger(__name__)


def compute_commission(order_amount: int, rate: Decimal) -> int:
    """Commission in whole VND, half-up rounded."""
    amount = Decimal(order_amount) * Decimal(rate) / Decimal(100)
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class CommissionSummary:
    items: list[Commission]
    totals: dict[str, int] = field(default_factory=dict)

    @property
    def total_amount(self) -> int:
        return sum(self.totals.values())


class CommissionService:
    @staticmethod
    def resolve_rate(saler: SalerDetails, course_id: UUID, db: Session) -> Decimal:
        override = (
            db.query(SalerCourseCommission)
            .filter(
                SalerCourseCommission.saler_details_id == saler.id,
                SalerCourseCommission.course_id == course_id,
            )
            .first()
        )
        if override is not None:
            return Decimal(override.commission_rate)
        return Decimal(saler.default_commission_rate)

    @staticmethod
    def create_for_order(event: OrderPaid, db: Session) -> Commission | None:
        """
        Freeze the affiliate commission for a paid course order.

        Returns None when the order has no saler, the commission already
        exists, or the saler profile is gone.
        """
        if event.saler_id is None:
            return None

        existing = db.query(Commission).filter(Commission.order_id == event.order_id).first()
        if existing is not None:
            logger.info("commission_already_exists order_id=%s", event.order_id)
            return None

        saler = db.query(SalerDetails).filter(SalerDetails.user_id == event.saler_id).first()
        if saler is None:
            logger.warning(
                "commission_saler_missing order_id=%s saler_id=%s", event.order_id, event.saler_id
            )
            return None

        rate = CommissionService.resolve_rate(saler, event.course_id, db)
        commission = Commission(
            order_id=event.order_id,
            saler_id=event.saler_id,
            course_id=event.course_id,
            order_amount=event.amount,
            commission_rate=rate,
            commission_amount=compute_commission(event.amount, rate),
            status=CommissionStatus.AVAILABLE,
        )
        db.add(commission)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent delivery of the same event won
            db.rollback()
            logger.info("commission_insert_conflict order_id=%s", event.order_id)
            return None

        db.refresh(commission)
        logger.info(
            "commission_created order_id=%s saler_id=%s rate=%s amount=%s",
            event.order_id,
            event.saler_id,
            rate,
            commission.commission_amount,
        )
        return commission

    @staticmethod
    def list_commissions(saler_id: UUID, db: Session) -> CommissionSummary:
        items = (
            db.query(Commission)
            .filter(Commission.saler_id == saler_id)
            .order_by(Commission.created_at.desc())
            .all()
        )
        rows = (
            db.query(Commission.status, func.coalesce(func.sum(Commission.commission_amount), 0))
            .filter(Commission.saler_id == saler_id)
            .group_by(Commission.status)
            .all()
        )
        totals = {s.value: 0 for s in CommissionStatus}
        for status, total in rows:
            totals[CommissionStatus(status).value] = int(total)
        return CommissionSummary(items=list(items), totals=totals)


async def create_commission_for_order(event: OrderPaid, db: Session) -> None:
    CommissionService.create_for_order(event, db)


def register_commission_listener(bus: EventBus) -> None:
    bus.subscribe(OrderPaid, create_commission_for_order)
