import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Annotated, Any, cast

from fastapi import Cookie, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth.models.user import User, UserRole
from app.core import security
from app.db.session import get_db

logger = logging.getLogger(__name__)


async def get_access_token_from_cookie(
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """Extract and validate access token from cookie"""
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bạn cần đăng nhập",
        )
    return access_token


async def get_validated_token_payload(
    token: str,
    expected_type: str = "access",
) -> dict[str, Any]:
    """Decode and validate JWT token"""
    payload = security.decode_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Không thể xác thực thông tin đăng nhập",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != expected_type:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Loại token không hợp lệ, cần {expected_type}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


async def get_current_user(
    access_token: str = Depends(get_access_token_from_cookie),
    db: Session = Depends(get_db),
) -> User:
    """Get current authenticated user from access token"""
    payload = await get_validated_token_payload(access_token, expected_type="access")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Không thể xác thực thông tin đăng nhập",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Không tìm thấy người dùng",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        logger.warning("inactive_user_rejected user_id=%s", user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tài khoản đã bị vô hiệu hóa",
        )

    return cast(User, user)


def require_roles(*roles: UserRole, detail: str) -> Callable[..., Awaitable[User]]:
    """Dependency admitting only users whose role is one of ``roles``."""

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return dependency


require_admin = require_roles(UserRole.ADMIN, detail="Yêu cầu quyền quản trị viên")

# Admins may look at any affiliate view
require_saler = require_roles(
    UserRole.SALER, UserRole.ADMIN, detail="Yêu cầu quyền cộng tác viên"
)
