from uuid import UUID

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.models.user import User
from app.courses.models import Lesson
from app.courses.services.enrollment_service import EnrollmentService
from app.db.session import get_db


class RequireCourseEnrollment:
    """Dependency class to check if user is enrolled in a course."""

    def __init__(self, skip_for_admin: bool = True):
        """
        Initialize enrollment requirement.

        Args:
            skip_for_admin: If True, admins bypass enrollment check. Default True.
        """
        self.skip_for_admin = skip_for_admin

    def __call__(
        self,
        course_id: UUID,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> None:
        if self.skip_for_admin and current_user.is_admin:
            return

        enrollment = EnrollmentService.get_user_enrollment(current_user.id, course_id, db)
        if not enrollment:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Bạn chưa đăng ký khóa học này",
            )
        if not enrollment.grants_access:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Quyền truy cập khóa học của bạn đã bị tạm ngưng",
            )


class RequireLessonInCourse:
    """Dependency class to check that a lesson belongs to the course in the path."""

    def __call__(
        self,
        course_id: UUID,
        lesson_id: UUID,
        db: Session = Depends(get_db),
    ) -> Lesson:
        lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
        if not lesson or lesson.course_id != course_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Bài học không tồn tại",
            )
        return lesson
