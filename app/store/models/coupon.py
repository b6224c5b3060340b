import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Enum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.datetime_utils import utcnow
from app.db.session import Base


class CouponType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class CouponScope(str, enum.Enum):
    ALL = "ALL"
    BOOK = "BOOK"
    INDICATOR = "INDICATOR"
    COURSE = "COURSE"


class Coupon(Base):
    __tablename__ = "coupons"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    code: Mapped[str] = mapped_column(unique=True, index=True)  # Stored upper-cased
    type: Mapped[CouponType] = mapped_column(
        Enum(CouponType, values_callable=lambda obj: [e.value for e in obj])
    )
    value: Mapped[int] = mapped_column()
    applicable_to: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), default=lambda: [CouponScope.ALL.value]
    )
    expires_at: Mapped[datetime | None] = mapped_column(default=None)
    usage_limit: Mapped[int] = mapped_column(default=0)  # 0 = unlimited
    usage_count: Mapped[int] = mapped_column(default=0)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    def applies_to(self, scope: CouponScope) -> bool:
        scopes = self.applicable_to or [CouponScope.ALL.value]
        return CouponScope.ALL.value in scopes or scope.value in scopes

    def __repr__(self) -> str:
        return f"<Coupon(code={self.code}, type={self.type}, value={self.value})>"
