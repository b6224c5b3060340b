from pydantic import BaseModel, EmailStr, Field

from app.auth.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Login request schema"""

    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    """Returned after a successful login; the token itself travels in a cookie."""

    user: UserResponse
    must_change_password: bool = False


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


class MessageResponse(BaseModel):
    message: str
