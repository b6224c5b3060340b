from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.dependencies import require_saler
from app.auth.models.user import User
from app.db.session import get_db
from app.sales.schemas.commission import CommissionListResponse, CommissionResponse
from app.sales.services.commission_service import CommissionService

router = APIRouter(prefix="/saler", tags=["saler"])


@router.get("/commissions", response_model=CommissionListResponse)
async def list_my_commissions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_saler),
) -> CommissionListResponse:
    """The current affiliate's commissions, newest first, with totals per status."""
    summary = CommissionService.list_commissions(current_user.id, db)
    return CommissionListResponse(
        commissions=[CommissionResponse.from_commission(c) for c in summary.items],
        totals_by_status=summary.totals,
        total_amount=summary.total_amount,
    )
