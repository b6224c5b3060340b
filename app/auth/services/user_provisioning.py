"""Find-or-create of buyer accounts during checkout."""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.models.user import User, UserRole
from app.core import security
from app.core.events import BuyerAccountCreated

logger = logging.getLogger(__name__)


@dataclass
class BuyerContact:
    email: str
    name: str
    phone: str | None = None


@dataclass
class ProvisionResult:
    user: User
    created: bool
    event: BuyerAccountCreated | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserProvisioningService:
    @staticmethod
    def find_by_email(email: str, db: Session) -> User | None:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    @staticmethod
    def find_or_create_buyer(contact: BuyerContact, db: Session) -> ProvisionResult:
        """
        Return the account for a checkout e-mail, creating one if needed.

        New accounts get a temporary password and must change it on first
        login. The returned event carries the credentials and is published by
        the caller once its transaction commits. The new row is only flushed.
        """
        email = normalize_email(contact.email)
        user = UserProvisioningService.find_by_email(email, db)
        if user:
            if contact.phone and not user.phone:
                user.phone = contact.phone
            return ProvisionResult(user=user, created=False)

        temp_password = security.generate_temporary_password()
        user = User(
            email=email,
            name=contact.name.strip() or email.split("@")[0],
            phone=contact.phone,
            hashed_password=security.get_password_hash(temp_password),
            role=UserRole.USER,
            is_active=True,
            must_change_password=True,
        )
        db.add(user)
        try:
            db.flush()
        except IntegrityError:
            # Same e-mail checked out concurrently
            db.rollback()
            existing = UserProvisioningService.find_by_email(email, db)
            if existing is None:
                raise
            return ProvisionResult(user=existing, created=False)

        logger.info("buyer_account_created user_id=%s", user.id)
        return ProvisionResult(
            user=user,
            created=True,
            event=BuyerAccountCreated(
                user_id=user.id,
                email=user.email,
                name=user.name,
                temporary_password=temp_password,
            ),
        )
