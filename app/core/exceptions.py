"""Application error hierarchy and its FastAPI handlers.

Services raise ``AppError`` subclasses; the handlers below turn them into
``{"success": false, "error": {code, message, details}}`` bodies. Messages
are shown to buyers and students as they are, so they are written in
Vietnamese and say what went wrong.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AppError):
    """404; ``resource`` names what was looked up (order, course, lesson...)."""

    def __init__(self, message: str = "Không tìm thấy dữ liệu", resource: str | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details={"resource": resource} if resource else None,
        )


class ValidationError(AppError):
    """400 for business-rule violations; request shape errors stay 422."""

    def __init__(self, message: str = "Dữ liệu không hợp lệ", field: str | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else None,
        )


class CouponRejectedError(ValidationError):
    def __init__(self, message: str):
        super().__init__(message, field="coupon_code")


class PaymentAmountMismatchError(ValidationError):
    """A bank transfer whose amount differs from the order total."""

    def __init__(self, expected: int, received: int):
        super().__init__(
            f"Số tiền thanh toán không khớp: cần {expected}, nhận {received}",
            field="transferAmount",
        )
        self.expected = expected
        self.received = received
        self.details.update({"expected": expected, "received": received})


class ConflictError(AppError):
    def __init__(self, message: str = "Dữ liệu bị xung đột", resource: str | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT",
            details={"resource": resource} if resource else None,
        )


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Bạn cần đăng nhập"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="UNAUTHORIZED",
        )


class ForbiddenError(AppError):
    """403; ``code`` tells the client why, e.g. LESSON_LOCKED or NOT_ENROLLED."""

    def __init__(self, message: str = "Bạn không có quyền truy cập", code: str | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=code or "FORBIDDEN",
        )


class ExternalServiceError(AppError):
    """502 when a gateway such as SePay fails; nothing has been persisted."""

    def __init__(self, message: str = "Lỗi dịch vụ bên ngoài", service: str | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="EXTERNAL_SERVICE_ERROR",
            details={"service": service} if service else None,
        )


def _error_body(code: str, message: str, details: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details or None},
    }


async def app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    # Rejected coupons and locked lessons are routine; only gateway and server faults are errors
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        "app_error code=%s status=%d path=%s message=%s",
        exc.error_code,
        exc.status_code,
        request.url.path,
        exc.message,
        extra={"details": exc.details},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.details),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # The rejected input is left out: NaN and Infinity cannot be rendered as JSON
    errors = [{k: v for k, v in error.items() if k != "input"} for error in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(errors)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception path=%s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("INTERNAL_ERROR", "Đã xảy ra lỗi không mong muốn", None),
    )


def register_exception_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Install the handlers; with ``debug`` unhandled errors keep their traceback."""
    app.add_exception_handler(AppError, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, validation_exception_handler  # type: ignore[arg-type]
    )
    if not debug:
        app.add_exception_handler(Exception, unhandled_exception_handler)
