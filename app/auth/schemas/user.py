from pydantic import BaseModel

from app.auth.models.user import User


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    phone: str | None = None
    role: str
    is_active: bool
    must_change_password: bool = False

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=str(user.id),
            email=user.email,
            name=user.name,
            phone=user.phone,
            role=user.role.value,
            is_active=user.is_active,
            must_change_password=user.must_change_password,
        )
