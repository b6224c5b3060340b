import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from fastapi import Response
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

TEMP_PASSWORD_PREFIX = "ZLP"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bool(pwd_context.verify(plain_password, hashed_password))


def get_password_hash(password: str) -> str:
    return str(pwd_context.hash(password))


def generate_temporary_password() -> str:
    """Return a short password for auto-provisioned buyer accounts, e.g. ``ZLP482913``."""
    return f"{TEMP_PASSWORD_PREFIX}{secrets.randbelow(1_000_000):06d}"


def create_access_token(data: dict[str, Any]) -> str:
    to_encode = data.copy()
    expire = datetime.now(UTC) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "iat": datetime.now(UTC), "type": "access"})
    encoded_jwt: str = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_token(token: str) -> dict[str, Any] | None:
    try:
        payload: dict[str, Any] = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def _cookie_samesite() -> Literal["lax", "none"]:
    """Return SameSite policy: 'none' for cross-site production, 'lax' for same-site/dev."""
    return "lax" if settings.DEBUG else "none"


def set_access_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        secure=not settings.DEBUG,
        samesite=_cookie_samesite(),
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def clear_access_cookie(response: Response) -> None:
    response.delete_cookie("access_token", samesite=_cookie_samesite(), secure=not settings.DEBUG)
