from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis
from redis.exceptions import RedisError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.auth.routes import auth
from app.core import redis as redis_module
from app.core.config import settings
from app.core.events import event_bus
from app.core.exceptions import register_exception_handlers
from app.core.log_config import RequestLoggingMiddleware, setup_logging
from app.core.rate_limit import limiter
from app.courses.routes import admin_enrollments, student_courses
from app.db import base as _models  # noqa: F401
from app.db.session import SessionLocal
from app.notifications.services.listeners import register_listeners
from app.sales.routes import commissions
from app.sales.services.commission_service import register_commission_listener
from app.store.routes import books, coupons, course_checkout, indicators, payment_webhooks
from app.store.services.sepay_service import get_sepay_service

setup_logging()
logger = structlog.get_logger(__name__)

register_listeners(event_bus)
register_commission_listener(event_bus)

# (router, path below API_V1_PREFIX, tags); store routers carry their own prefix and tags
ROUTERS: list[tuple[APIRouter, str, list[str] | None]] = [
    (auth.router, "/auth", ["authentication"]),
    (student_courses.router, "/student", ["student-courses"]),
    (admin_enrollments.router, "/admin", ["admin-enrollments"]),
    (books.router, "", None),
    (indicators.router, "", None),
    (course_checkout.router, "", None),
    (coupons.router, "", None),
    (payment_webhooks.router, "", None),
    (commissions.router, "", None),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if not settings.PAYMENT_WEBHOOK_SECRET_KEY:
        logger.warning("payment_webhook_secret_missing", effect="all SePay deliveries rejected")

    redis_module.redis_client = Redis.from_url(
        settings.REDIS_URL, decode_responses=True, encoding="utf-8"
    )
    try:
        await redis_module.redis_client.ping()
        logger.info("redis_connected")
    except RedisError as e:
        # Caching degrades to misses; requests still go to the database
        logger.error("redis_connection_failed", error=str(e))

    yield

    await redis_module.redis_client.close()
    redis_module.redis_client = None
    logger.info("redis_closed")


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Backend API for ZLP courses, books and indicator subscriptions",
    version="1.0.0",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
register_exception_handlers(app, debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

for router, path, tags in ROUTERS:
    app.include_router(router, prefix=f"{settings.API_V1_PREFIX}{path}", tags=tags)


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "ZLP Learning Commerce API", "version": "1.0.0", "status": "running"}


async def _redis_status() -> str:
    if redis_module.redis_client is None:
        return "unavailable"
    try:
        await redis_module.redis_client.ping()
    except RedisError:
        return "unhealthy"
    return "healthy"


def _database_status() -> str:
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return "unhealthy"
    finally:
        db.close()
    return "healthy"


@app.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness summary for the load balancer.

    Redis is optional, so only the database decides between healthy and
    degraded. The payment gateway reports its circuit state (closed, open,
    half_open) because checkouts fail with 502 while it is open.
    """
    database = _database_status()
    return {
        "status": "healthy" if database == "healthy" else "degraded",
        "database": database,
        "redis": await _redis_status(),
        "payment_gateway": get_sepay_service().circuit.state,
    }
