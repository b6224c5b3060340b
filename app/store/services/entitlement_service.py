import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.datetime_utils import utcnow
from app.store.models.book import BookAccessStatus, UserBookAccess

logger = logging.getLogger(__name__)


class EntitlementService:
    """Book access grants. Course access goes through EnrollmentService."""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, user_id: UUID, book_id: UUID) -> UserBookAccess | None:
        return (
            self.db.query(UserBookAccess)
            .filter(UserBookAccess.user_id == user_id, UserBookAccess.book_id == book_id)
            .first()
        )

    def grant_book_access(
        self, user_id: UUID, book_id: UUID, order_id: UUID | None = None
    ) -> UserBookAccess:
        """
        Give a user access to a book; safe to call repeatedly.

        A revoked grant is reactivated with a fresh granted_at. The caller
        commits.
        """
        access = self._find(user_id, book_id)
        if access is None:
            access = UserBookAccess(
                user_id=user_id,
                book_id=book_id,
                order_id=order_id,
                status=BookAccessStatus.ACTIVE,
                granted_at=utcnow(),
            )
            self.db.add(access)
            self.db.flush()
            logger.info("book_access_granted user_id=%s book_id=%s", user_id, book_id)
        elif access.status == BookAccessStatus.REVOKED:
            access.status = BookAccessStatus.ACTIVE
            access.granted_at = utcnow()
            access.order_id = order_id or access.order_id
            logger.info("book_access_reactivated user_id=%s book_id=%s", user_id, book_id)
        return access

    def revoke_book_access(self, user_id: UUID, book_id: UUID) -> bool:
        access = self._find(user_id, book_id)
        if access is None or access.status == BookAccessStatus.REVOKED:
            return False
        access.status = BookAccessStatus.REVOKED
        self.db.commit()
        return True

    def check_access(self, user_id: UUID, book_id: UUID) -> bool:
        access = self._find(user_id, book_id)
        return access is not None and access.status == BookAccessStatus.ACTIVE
