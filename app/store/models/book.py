import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Enum, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utcnow
from app.db.session import Base


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class BookAccessStatus(str, enum.Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class Book(Base):
    __tablename__ = "books"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    slug: Mapped[str] = mapped_column(unique=True, index=True)
    title: Mapped[str] = mapped_column()
    author: Mapped[str | None] = mapped_column(default=None)
    description: Mapped[str | None] = mapped_column(default=None)
    cover_url: Mapped[str | None] = mapped_column(default=None)
    file_url: Mapped[str | None] = mapped_column(default=None)
    price: Mapped[int] = mapped_column(default=0)  # VND
    discount_percentage: Mapped[int] = mapped_column(default=0)
    is_published: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, slug={self.slug})>"


class BookOrder(Base):
    __tablename__ = "book_orders"
    __table_args__ = (
        # One open order per buyer and book; concurrent checkouts collide here
        Index(
            "uq_book_orders_pending_user_book",
            "user_id",
            "book_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    book_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE"), index=True
    )
    transfer_code: Mapped[str | None] = mapped_column(unique=True, index=True, default=None)
    total_amount: Mapped[int] = mapped_column(default=0)
    qr_code_url: Mapped[str | None] = mapped_column(default=None)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=OrderStatus.PENDING,
        index=True,
    )
    # Coupon, discounts, payment fee and the buyer's contact snapshot
    order_metadata: Mapped[dict] = mapped_column(
        "metadata", JSON().with_variant(JSONB(), "postgresql"), default=dict
    )
    sepay_transaction_id: Mapped[str | None] = mapped_column(default=None)
    paid_at: Mapped[datetime | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    items = relationship("BookOrderItem", back_populates="order", cascade="all, delete-orphan")
    book = relationship("Book")
    user = relationship("User")

    def __repr__(self) -> str:
        return f"<BookOrder(id={self.id}, transfer_code={self.transfer_code}, status={self.status})>"


class BookOrderItem(Base):
    __tablename__ = "book_order_items"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("book_orders.id", ondelete="CASCADE"), index=True
    )
    book_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"))
    title: Mapped[str] = mapped_column()  # Snapshot at purchase time
    price: Mapped[int] = mapped_column()  # Snapshot at purchase time (VND)

    order = relationship("BookOrder", back_populates="items")


class UserBookAccess(Base):
    __tablename__ = "user_book_access"
    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_user_book_access"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    book_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE"), index=True
    )
    order_id: Mapped[uuid.UUID | None] = mapped_column(default=None)
    status: Mapped[BookAccessStatus] = mapped_column(
        Enum(BookAccessStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=BookAccessStatus.ACTIVE,
    )
    granted_at: Mapped[datetime] = mapped_column(default=utcnow)

    book = relationship("Book")
