import logging
import uuid
from typing import Any, cast

from app.auth.models.user import User
from app.core.exceptions import ForbiddenError, NotFoundError
from app.store.models.book import (
    Book,
    BookAccessStatus,
    BookOrder,
    BookOrderItem,
    OrderStatus,
    UserBookAccess,
)
from app.store.models.coupon import CouponScope
from app.store.services.checkout_service import CheckoutService, PriceBreakdown
from app.store.services.entitlement_service import EntitlementService

logger = logging.getLogger(__name__)


class BookOrderService(CheckoutService):
    transfer_prefix = "BZLP"
    coupon_scope = CouponScope.BOOK
    order_model = BookOrder
    product_column = "book_id"
    not_found_message = "Sách không tồn tại"

    def load_product(self, product_id: uuid.UUID) -> Book | None:
        return cast(
            Book | None,
            self.db.query(Book)
            .filter(Book.id == product_id, Book.is_published == True)  # noqa: E712
            .first(),
        )

    def pending_status(self) -> OrderStatus:
        return OrderStatus.PENDING

    def new_order(self, user: User, product: Any) -> BookOrder:
        return BookOrder(user_id=user.id, book_id=product.id, status=OrderStatus.PENDING)

    def fill_order(self, order: Any, product: Any, pricing: PriceBreakdown) -> None:
        # One line per book, priced after the default discount
        order.items = [
            BookOrderItem(book_id=product.id, title=product.title, price=pricing.price_after_default)
        ]

    def get_my_books(self, user_id: uuid.UUID) -> list[UserBookAccess]:
        rows = (
            self.db.query(UserBookAccess)
            .filter(
                UserBookAccess.user_id == user_id,
                UserBookAccess.status == BookAccessStatus.ACTIVE,
            )
            .order_by(UserBookAccess.granted_at.desc())
            .all()
        )
        return cast(list[UserBookAccess], rows)

    def get_download(self, user_id: uuid.UUID, book_id: uuid.UUID) -> Book:
        """
        Return a book whose file the user may download.

        Owners keep their download after a book is unpublished; a revoked
        grant is the same as never having bought the book.
        """
        book = cast(Book | None, self.db.query(Book).filter(Book.id == book_id).first())
        if book is None:
            raise NotFoundError(self.not_found_message, resource="book")

        if not EntitlementService(self.db).check_access(user_id, book_id):
            logger.warning("book_download_denied user_id=%s book_id=%s", user_id, book_id)
            raise ForbiddenError("Bạn chưa sở hữu cuốn sách này", code="BOOK_ACCESS_DENIED")

        if not book.file_url:
            raise NotFoundError("Sách chưa có tệp để tải xuống", resource="book_file")
        return book
