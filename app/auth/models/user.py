import enum
import uuid
from datetime import datetime

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.datetime_utils import utcnow
from app.db.session import Base


class UserRole(str, enum.Enum):
    USER = "user"
    SALER = "saler"
    ADMIN = "admin"


class User(Base):
    """
    User model for authentication and authorization.

    Attributes:
        id: Unique UUID primary key
        email: Unique lower-cased email address
        hashed_password: Argon2 hashed password
        name: Display name
        phone: Contact phone captured at checkout (nullable)
        role: "user", "saler" (affiliate) or "admin"
        is_active: Whether the account may log in
        must_change_password: Set for accounts created during checkout with a
            temporary password; cleared by a successful password change
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(32), default=None)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, values_callable=lambda obj: [e.value for e in obj]),
        default=UserRole.USER,
    )
    is_active: Mapped[bool] = mapped_column(default=True)
    must_change_password: Mapped[bool] = mapped_column(default=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
