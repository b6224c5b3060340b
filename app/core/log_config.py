"""structlog on top of stdlib logging.

Modules keep using ``logging.getLogger(__name__)`` or ``structlog.get_logger``;
both end up as one JSON line per record (console output when DEBUG is on).
"""

import logging
import sys
import time
import uuid
from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

# Checkout provisioning and the payment webhook handle these values
SENSITIVE_KEYS = frozenset(
    {"password", "temporary_password", "authorization", "api_key", "access_token", "secret_key"}
)

# Load balancer probes
UNLOGGED_PATHS = frozenset({"/health"})


def mask_sensitive(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = "***"
    return event_dict


def setup_logging() -> None:
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        mask_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Any
    if settings.DEBUG:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        # Vietnamese messages stay readable in the JSON output
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.LOG_LEVEL.upper())

    for name in ("uvicorn.access", "sqlalchemy.engine", "httpx", "aiosmtplib"):
        logging.getLogger(name).setLevel(logging.WARNING)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One access log line per request, tagged with a request id.

    The id is taken from ``X-Request-ID`` when the caller sends one and is
    echoed back, so a SePay delivery can be matched with its log lines.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        logger = structlog.get_logger("http")
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            await logger.aexception(
                "request_failed",
                method=request.method,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise

        response.headers["X-Request-ID"] = request_id
        log = logger.awarning if response.status_code >= 500 else logger.ainfo
        await log(
            "request",
            method=request.method,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
            client=request.client.host if request.client else "unknown",
        )
        return response
