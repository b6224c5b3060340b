import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utcnow
from app.db.session import Base


class CommissionStatus(str, enum.Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    PAID = "paid"


class SalerDetails(Base):
    """Affiliate profile of a user with the ``saler`` role."""

    __tablename__ = "saler_details"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True
    )
    code_saler: Mapped[str] = mapped_column(unique=True, index=True)
    default_commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("10"))
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    user = relationship("User")
    course_rates = relationship(
        "SalerCourseCommission", back_populates="saler_details", cascade="all, delete-orphan"
    )


class SalerCourseCommission(Base):
    """Per-course rate that overrides the saler's default."""

    __tablename__ = "saler_course_commissions"
    __table_args__ = (
        UniqueConstraint("saler_details_id", "course_id", name="uq_saler_course_commission"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    saler_details_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("saler_details.id", ondelete="CASCADE"), index=True
    )
    course_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"))
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2))

    saler_details = relationship("SalerDetails", back_populates="course_rates")


class Commission(Base):
    """Frozen commission snapshot for one paid course order."""

    __tablename__ = "commissions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("course_orders.id", ondelete="CASCADE"), unique=True
    )
    saler_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    course_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"))
    order_amount: Mapped[int] = mapped_column()
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2))
    commission_amount: Mapped[int] = mapped_column()
    status: Mapped[CommissionStatus] = mapped_column(
        Enum(CommissionStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=CommissionStatus.AVAILABLE,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    def __repr__(self) -> str:
        return f"<Commission(order_id={self.order_id}, amount={self.commission_amount})>"
