import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload

from app.auth.dependencies import require_admin
from app.auth.models.user import User
from app.auth.services.user_provisioning import BuyerContact, UserProvisioningService
from app.core.events import event_bus
from app.courses.models import Course, Enrollment, EnrollmentSource
from app.courses.schemas.enrollment import (
    AdminCreateEnrollmentRequest,
    AdminEnrollmentListResponse,
    AdminEnrollmentResponse,
)
from app.courses.services.enrollment_service import EnrollmentService
from app.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


def _enrollment_to_response(
    enrollment: Enrollment, account_created: bool = False
) -> AdminEnrollmentResponse:
    return AdminEnrollmentResponse(
        id=str(enrollment.id),
        user_id=str(enrollment.user_id),
        course_id=str(enrollment.course_id),
        user_email=enrollment.user.email if enrollment.user else "",
        status=enrollment.status,
        source=enrollment.source,
        progress_percent=enrollment.progress_percent,
        completed_lessons_count=enrollment.completed_lessons_count,
        enrolled_at=enrollment.enrolled_at,
        completed_at=enrollment.completed_at,
        account_created=account_created,
    )


def _get_course_or_404(course_id: UUID, db: Session) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Không tìm thấy khóa học",
        )
    return course


@router.get(
    "/courses/{course_id}/enrollments",
    response_model=AdminEnrollmentListResponse,
)
async def list_course_enrollments(
    course_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> AdminEnrollmentListResponse:
    _get_course_or_404(course_id, db)

    query = (
        db.query(Enrollment)
        .options(joinedload(Enrollment.user))
        .filter(Enrollment.course_id == course_id)
    )
    total = db.query(Enrollment).filter(Enrollment.course_id == course_id).count()
    enrollments = query.order_by(Enrollment.enrolled_at.desc()).offset(skip).limit(limit).all()

    return AdminEnrollmentListResponse(
        total=total,
        enrollments=[_enrollment_to_response(e) for e in enrollments],
    )


@router.post(
    "/courses/{course_id}/enrollments",
    response_model=AdminEnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_enrollment(
    course_id: UUID,
    request: AdminCreateEnrollmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> AdminEnrollmentResponse:
    """
    Enroll a user by e-mail without a payment.

    Unknown e-mails get an account with a temporary password, mailed to them.
    A suspended enrollment is reactivated.
    """
    _get_course_or_404(course_id, db)

    provision = UserProvisioningService.find_or_create_buyer(
        BuyerContact(email=request.email, name=request.name or ""), db
    )
    existing = EnrollmentService.get_user_enrollment(provision.user.id, course_id, db)
    if existing is not None and existing.grants_access:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Người dùng đã được ghi danh vào khóa học này",
        )

    enrollment = EnrollmentService.grant_enrollment(
        provision.user.id, course_id, db, source=EnrollmentSource.ADMIN
    )
    db.commit()
    db.refresh(enrollment)
    logger.info(
        "admin_enrollment_created course_id=%s user_id=%s admin_id=%s",
        course_id,
        provision.user.id,
        current_user.id,
    )

    if provision.event is not None:
        await event_bus.publish(provision.event, db)

    return _enrollment_to_response(enrollment, account_created=provision.created)


@router.post(
    "/courses/{course_id}/enrollments/{user_id}/suspend",
    response_model=AdminEnrollmentResponse,
)
async def suspend_enrollment(
    course_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> AdminEnrollmentResponse:
    enrollment = EnrollmentService.suspend_enrollment(user_id, course_id, db)
    logger.info(
        "admin_enrollment_suspended course_id=%s user_id=%s admin_id=%s",
        course_id,
        user_id,
        current_user.id,
    )
    return _enrollment_to_response(enrollment)
