"""Shared checkout flow for bank-transfer products.

Every product type follows the same lifecycle: a PENDING order carrying a
transfer code and a QR image, then either PAID (via the payment webhook) or
cancelled and deleted. Subclasses describe the product; the base class owns
pricing, buyer provisioning, pending-order reuse and QR generation.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.models.user import User
from app.auth.services.user_provisioning import (
    BuyerContact,
    ProvisionResult,
    UserProvisioningService,
)
from app.core.config import settings
from app.core.events import event_bus
from app.core.exceptions import ConflictError, ExternalServiceError, NotFoundError, ValidationError
from app.store.models.coupon import CouponScope
from app.store.services.coupon_service import CouponService
from app.store.services.sepay_service import QrCode, SePayService, get_sepay_service

logger = logging.getLogger(__name__)


def make_transfer_code(prefix: str, order_id: uuid.UUID) -> str:
    """Bank-transfer description for an order, e.g. ``BZLP3F9A0C12DE``."""
    return f"{prefix}{order_id.hex[-10:].upper()}"


def discounted_price(price: int, discount_percentage: int) -> int:
    """Product price after its own default discount, rounded down."""
    discount_percentage = max(0, min(100, discount_percentage or 0))
    return price * (100 - discount_percentage) // 100


@dataclass
class PriceBreakdown:
    original_price: int
    price_after_default: int
    coupon_code: str | None = None
    coupon_discount: int = 0
    payment_fee: int = 0

    @property
    def default_discount(self) -> int:
        return self.original_price - self.price_after_default

    @property
    def subtotal(self) -> int:
        return max(0, self.price_after_default - self.coupon_discount)

    @property
    def total(self) -> int:
        return self.subtotal + self.payment_fee

    def as_metadata(self) -> dict[str, Any]:
        return {
            "original_price": self.original_price,
            "default_discount": self.default_discount,
            "coupon_code": self.coupon_code,
            "coupon_discount": self.coupon_discount,
            "payment_fee": self.payment_fee,
            "price": self.total,
        }


@dataclass
class CheckoutResult:
    order: Any
    qr: QrCode
    pricing: PriceBreakdown
    user: User
    is_new_user: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


class CheckoutService(ABC):
    """Template for a product checkout; see module docstring."""

    transfer_prefix: ClassVar[str]
    coupon_scope: ClassVar[CouponScope]
    order_model: ClassVar[type]
    product_column: ClassVar[str]
    amount_column: ClassVar[str] = "total_amount"
    not_found_message: ClassVar[str] = "Không tìm thấy sản phẩm"

    def __init__(self, db: Session, sepay: SePayService | None = None):
        self.db = db
        self.sepay = sepay or get_sepay_service()

    @abstractmethod
    def load_product(self, product_id: uuid.UUID) -> Any:
        """Return the purchasable product or None when missing or unpublished."""

    @abstractmethod
    def new_order(self, user: User, product: Any) -> Any:
        """Build an unsaved PENDING order for the product."""

    def fill_order(self, order: Any, product: Any, pricing: PriceBreakdown) -> None:
        """Hook for product-specific fields written on create and on reuse."""

    def product_price(self, product: Any) -> tuple[int, int]:
        return product.price, product.discount_percentage

    def quote(self, product: Any, coupon_code: str | None) -> PriceBreakdown:
        price, discount_percentage = self.product_price(product)
        base = discounted_price(price, discount_percentage)
        pricing = PriceBreakdown(
            original_price=price,
            price_after_default=base,
            payment_fee=settings.PAYMENT_FEE,
        )
        if coupon_code and coupon_code.strip():
            coupon_quote = CouponService(self.db).validate(coupon_code, self.coupon_scope, base)
            pricing.coupon_code = coupon_quote.coupon.code
            pricing.coupon_discount = coupon_quote.discount_amount
        return pricing

    def find_pending(self, user_id: uuid.UUID, product_id: uuid.UUID) -> Any:
        model = self.order_model
        return (
            self.db.query(model)
            .filter(
                model.user_id == user_id,
                getattr(model, self.product_column) == product_id,
                model.status == self.pending_status(),
            )
            .first()
        )

    @abstractmethod
    def pending_status(self) -> Any:
        pass

    def get_order(self, order_id: uuid.UUID) -> Any:
        order = self.db.query(self.order_model).filter(self.order_model.id == order_id).first()
        if order is None:
            raise NotFoundError("Không tìm thấy đơn hàng", resource="order")
        return order

    def _apply(
        self,
        order: Any,
        product: Any,
        pricing: PriceBreakdown,
        contact: BuyerContact,
        extra_metadata: dict[str, Any],
    ) -> None:
        setattr(order, self.amount_column, pricing.total)
        order.order_metadata = {
            **pricing.as_metadata(),
            **extra_metadata,
            "customer_name": contact.name,
            "customer_email": contact.email.strip().lower(),
            "customer_phone": contact.phone,
        }
        self.fill_order(order, product, pricing)

    def _insert_or_reuse(
        self,
        provision: ProvisionResult,
        product: Any,
        pricing: PriceBreakdown,
        contact: BuyerContact,
        extra_metadata: dict[str, Any],
    ) -> tuple[Any, ProvisionResult]:
        order = self.find_pending(provision.user.id, product.id)
        if order is not None:
            self._apply(order, product, pricing, contact, extra_metadata)
            logger.info("checkout_pending_order_reused order_id=%s", order.id)
            return order, provision

        order = self.new_order(provision.user, product)
        self._apply(order, product, pricing, contact, extra_metadata)
        self.db.add(order)
        try:
            self.db.flush()
        except IntegrityError:
            # Lost the race against a concurrent checkout for the same buyer and product
            self.db.rollback()
            user = UserProvisioningService.find_by_email(contact.email, self.db)
            order = self.find_pending(user.id, product.id) if user else None
            if user is None or order is None:
                raise ConflictError(
                    "Đơn hàng đang được xử lý, vui lòng thử lại", resource="order"
                ) from None
            self._apply(order, product, pricing, contact, extra_metadata)
            return order, ProvisionResult(user=user, created=False)

        order.transfer_code = make_transfer_code(self.transfer_prefix, order.id)
        return order, provision

    async def checkout(
        self,
        product_id: uuid.UUID,
        contact: BuyerContact,
        coupon_code: str | None = None,
        extra_metadata: dict[str, Any] | None = None,
    ) -> CheckoutResult:
        """
        Create or refresh the buyer's PENDING order and its payment QR.

        Raises:
            NotFoundError: product missing or unpublished
            ValidationError: coupon rejected
            ExternalServiceError: QR could not be generated; nothing is saved
        """
        product = self.load_product(product_id)
        if product is None:
            raise NotFoundError(self.not_found_message, resource="product")

        pricing = self.quote(product, coupon_code)
        if pricing.total <= 0:
            raise ValidationError("Số tiền thanh toán không hợp lệ")

        provision = UserProvisioningService.find_or_create_buyer(contact, self.db)
        order, provision = self._insert_or_reuse(
            provision, product, pricing, contact, extra_metadata or {}
        )

        try:
            qr = await self.sepay.create_qr(pricing.total, order.transfer_code)
        except ExternalServiceError:
            self.db.rollback()
            raise
        order.qr_code_url = qr.qr_url

        self.db.commit()
        self.db.refresh(order)

        logger.info(
            "checkout_created order_id=%s transfer_code=%s amount=%s new_user=%s",
            order.id,
            order.transfer_code,
            pricing.total,
            provision.created,
        )

        if provision.event is not None:
            await event_bus.publish(provision.event, self.db)

        return CheckoutResult(
            order=order,
            qr=qr,
            pricing=pricing,
            user=provision.user,
            is_new_user=provision.created,
        )

    def cancel(self, order_id: uuid.UUID) -> None:
        """Delete a PENDING order; paid orders cannot be cancelled."""
        order = self.get_order(order_id)
        if order.status != self.pending_status():
            raise ValidationError("Chỉ có thể hủy đơn hàng đang chờ thanh toán")
        self.db.delete(order)
        self.db.commit()
        logger.info("checkout_cancelled order_id=%s", order_id)
