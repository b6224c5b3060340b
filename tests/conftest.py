from pathlib import Path

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env.test"
load_dotenv(env_file)

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core import redis as redis_module  # noqa: E402
from app.core.events import event_bus  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.session import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.notifications.services.listeners import register_listeners  # noqa: E402
from app.sales.services.commission_service import register_commission_listener  # noqa: E402
from tests.utils.factories import create_user_factory  # noqa: E402


@pytest.fixture
def test_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    session = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get.return_value = None
    client.setex.return_value = True
    client.delete.return_value = 0
    client.scan.return_value = (0, [])
    return client


@pytest.fixture(autouse=True)
def reset_event_bus():
    event_bus.clear()
    register_listeners(event_bus)
    register_commission_listener(event_bus)
    yield
    event_bus.clear()
    register_listeners(event_bus)
    register_commission_listener(event_bus)


@pytest.fixture
async def test_app(db_session, redis_client):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    redis_module.redis_client = redis_client

    yield app

    app.dependency_overrides.clear()
    redis_module.redis_client = None


@pytest.fixture
async def test_client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client


@pytest.fixture
def test_user(db_session):
    return create_user_factory(
        db_session, email="test@example.com", password="testpass123", role="user"
    )


@pytest.fixture
def test_admin(db_session):
    return create_user_factory(
        db_session, email="admin@example.com", password="adminpass123", role="admin"
    )


@pytest.fixture
def test_user_token(test_user):
    return create_access_token(
        {"sub": str(test_user.id), "email": test_user.email, "role": test_user.role.value}
    )


@pytest.fixture
def test_admin_token(test_admin):
    return create_access_token(
        {"sub": str(test_admin.id), "email": test_admin.email, "role": test_admin.role.value}
    )
