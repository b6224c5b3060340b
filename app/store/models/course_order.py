import uuid
from datetime import datetime

from sqlalchemy import JSON, Enum, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utcnow
from app.db.session import Base
from app.store.models.book import OrderStatus


class CourseOrder(Base):
    __tablename__ = "course_orders"
    __table_args__ = (
        Index(
            "uq_course_orders_pending_user_course",
            "user_id",
            "course_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), index=True
    )
    # Affiliate who referred the buyer, resolved from the ``ref`` code at checkout
    saler_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), index=True, default=None
    )
    amount: Mapped[int] = mapped_column(default=0)
    transfer_code: Mapped[str | None] = mapped_column(unique=True, index=True, default=None)
    qr_code_url: Mapped[str | None] = mapped_column(default=None)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=OrderStatus.PENDING,
        index=True,
    )
    order_metadata: Mapped[dict] = mapped_column(
        "metadata", JSON().with_variant(JSONB(), "postgresql"), default=dict
    )
    sepay_transaction_id: Mapped[str | None] = mapped_column(default=None)
    paid_at: Mapped[datetime | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    course = relationship("Course")

    def __repr__(self) -> str:
        return f"<CourseOrder(id={self.id}, transfer_code={self.transfer_code}, status={self.status})>"  # noqa: E501
