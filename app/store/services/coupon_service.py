import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.datetime_utils import utcnow
from app.core.exceptions import CouponRejectedError
from app.core.repository import BaseRepository
from app.store.models.coupon import Coupon, CouponScope, CouponType

logger = logging.getLogger(__name__)


@dataclass
class CouponQuote:
    coupon: Coupon
    price_before_coupon: int
    discount_amount: int

    @property
    def final_price(self) -> int:
        return max(0, self.price_before_coupon - self.discount_amount)


class CouponRepository(BaseRepository[Coupon]):
    def __init__(self, db: Session):
        super().__init__(db, Coupon)

    def find_by_code(self, code: str) -> Coupon | None:
        return self.query().filter(Coupon.code == code.strip().upper()).first()

    def increment_usage(self, code: str) -> bool:
        """
        Count one confirmed use of a coupon in a single UPDATE.

        The limit is re-checked in the WHERE clause, so usage_count never
        passes usage_limit even when payments confirm concurrently.

        Returns:
            False when the coupon is unknown or already exhausted
        """
        normalized = code.strip().upper()
        updated = (
            self.query()
            .filter(
                Coupon.code == normalized,
                (Coupon.usage_limit == 0) | (Coupon.usage_count < Coupon.usage_limit),
            )
            .update({Coupon.usage_count: Coupon.usage_count + 1}, synchronize_session=False)
        )
        return bool(updated)


def compute_discount(coupon: Coupon, price: int) -> int:
    if coupon.type == CouponType.PERCENTAGE:
        discount = price * coupon.value // 100
    else:
        discount = coupon.value
    return max(0, min(discount, price))


class CouponService:
    def __init__(self, db: Session):
        self.db = db
        self.coupons = CouponRepository(db)

    def validate(self, code: str, scope: CouponScope, price: int) -> CouponQuote:
        """
        Check a coupon against a product type and quote its discount.

        Checks run in a fixed order (exists, active, not expired, not
        exhausted, applicable) and the first failure is reported. Nothing
        is written.

        Raises:
            CouponRejectedError: with the reason shown to the buyer
        """
        coupon = self.coupons.find_by_code(code)
        if coupon is None:
            raise CouponRejectedError("Mã giảm giá không tồn tại")
        if not coupon.is_active:
            raise CouponRejectedError("Mã giảm giá đã bị vô hiệu hóa")
        if coupon.expires_at is not None and coupon.expires_at < utcnow():
            raise CouponRejectedError("Mã giảm giá đã hết hạn")
        if coupon.usage_limit > 0 and coupon.usage_count >= coupon.usage_limit:
            raise CouponRejectedError("Mã giảm giá đã hết lượt sử dụng")
        if not coupon.applies_to(scope):
            raise CouponRejectedError(f"Mã giảm giá không áp dụng cho {scope.value.lower()}")

        return CouponQuote(
            coupon=coupon,
            price_before_coupon=price,
            discount_amount=compute_discount(coupon, price),
        )

    def record_usage(self, code: str) -> None:
        """Increment usage after a confirmed payment; failures are logged, never raised."""
        try:
            if not self.coupons.increment_usage(code):
                logger.warning("coupon_usage_not_incremented code=%s", code)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("coupon_usage_increment_failed code=%s", code)
