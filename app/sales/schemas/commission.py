import uuid
from decimal import Decimal

from pydantic import BaseModel

from app.core.datetime_utils import UTCDatetime
from app.sales.models.saler import Commission, CommissionStatus


class CommissionResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    course_id: uuid.UUID
    order_amount: int
    commission_rate: Decimal
    commission_amount: int
    status: CommissionStatus
    created_at: UTCDatetime

    @classmethod
    def from_commission(cls, commission: Commission) -> "CommissionResponse":
        return cls(
            id=commission.id,
            order_id=commission.order_id,
            course_id=commission.course_id,
            order_amount=commission.order_amount,
            commission_rate=commission.commission_rate,
            commission_amount=commission.commission_amount,
            status=commission.status,
            created_at=commission.created_at,
        )


class CommissionListResponse(BaseModel):
    commissions: list[CommissionResponse]
    totals_by_status: dict[str, int]
    total_amount: int
