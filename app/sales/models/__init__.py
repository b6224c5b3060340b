from app.sales.models.saler import (
    Commission,
    CommissionStatus,
    SalerCourseCommission,
    SalerDetails,
)

__all__ = ["Commission", "CommissionStatus", "SalerCourseCommission", "SalerDetails"]
