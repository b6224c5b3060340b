import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Enum, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utcnow
from app.db.session import Base


class SubscriptionStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"


class Indicator(Base):
    """A trading indicator sold as a monthly subscription."""

    __tablename__ = "indicators"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    slug: Mapped[str] = mapped_column(unique=True, index=True)
    name: Mapped[str] = mapped_column()
    description: Mapped[str | None] = mapped_column(default=None)
    price: Mapped[int] = mapped_column(default=0)  # VND per period
    discount_percentage: Mapped[int] = mapped_column(default=0)
    is_published: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Indicator(id={self.id}, slug={self.slug})>"


class IndicatorSubscription(Base):
    __tablename__ = "indicator_subscriptions"
    __table_args__ = (
        Index(
            "uq_indicator_subscriptions_pending_user_indicator",
            "user_id",
            "indicator_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    indicator_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("indicators.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[SubscriptionStatus] = mapped_column(
        Enum(SubscriptionStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=SubscriptionStatus.PENDING,
        index=True,
    )
    auto_renew: Mapped[bool] = mapped_column(default=False)
    transfer_code: Mapped[str | None] = mapped_column(unique=True, index=True, default=None)
    total_amount: Mapped[int] = mapped_column(default=0)
    qr_code_url: Mapped[str | None] = mapped_column(default=None)
    order_metadata: Mapped[dict] = mapped_column(
        "metadata", JSON().with_variant(JSONB(), "postgresql"), default=dict
    )
    # The active window is the entitlement itself
    start_at: Mapped[datetime | None] = mapped_column(default=None)
    end_at: Mapped[datetime | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    indicator = relationship("Indicator")
    payments = relationship(
        "IndicatorPayment", back_populates="subscription", cascade="all, delete-orphan"
    )

    @property
    def is_currently_active(self) -> bool:
        if self.status != SubscriptionStatus.ACTIVE or self.end_at is None:
            return False
        return utcnow() < self.end_at

    def __repr__(self) -> str:
        return f"<IndicatorSubscription(id={self.id}, transfer_code={self.transfer_code}, status={self.status})>"  # noqa: E501


class IndicatorPayment(Base):
    __tablename__ = "indicator_payments"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    subscription_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("indicator_subscriptions.id", ondelete="CASCADE"), index=True
    )
    amount: Mapped[int] = mapped_column()
    period_start: Mapped[datetime] = mapped_column()
    period_end: Mapped[datetime] = mapped_column()
    sepay_transaction_id: Mapped[str | None] = mapped_column(default=None)
    paid_at: Mapped[datetime] = mapped_column(default=utcnow)

    subscription = relationship("IndicatorSubscription", back_populates="payments")
