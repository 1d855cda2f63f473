"""
Shared fixtures: a fresh in-memory database per test, seeded users, and an
HTTP client wired to the same database.
"""
import os

os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ["DB_TYPE"] = "sqlite"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import Base, get_db
from app.core.security import create_access_token, hash_password
from app.models.user_models import User
from app.services import table_service
from app.utils.request_context import RequestContext

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def fast_qr_images(monkeypatch):
    """QR rendering is covered separately; keep the rest of the suite fast."""
    monkeypatch.setattr(table_service, "render_table_qr", lambda qr_code: f"data:image/png;base64,{qr_code}")


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


async def _make_user(db: AsyncSession, username: str, role: str, is_active: bool = True) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(PASSWORD),
        first_name=username.capitalize(),
        last_name="Tester",
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin(db_session):
    return await _make_user(db_session, "admin", "admin")


@pytest_asyncio.fixture
async def cashier(db_session):
    return await _make_user(db_session, "cashier", "cashier")


@pytest_asyncio.fixture
async def customer(db_session):
    return await _make_user(db_session, "customer", "customer")


@pytest.fixture
def cashier_ctx(cashier):
    return RequestContext(user=cashier, user_agent="pytest", ip_address="127.0.0.1")


@pytest.fixture
def admin_ctx(admin):
    return RequestContext(user=admin, user_agent="pytest", ip_address="127.0.0.1")


@pytest_asyncio.fixture
async def table(db_session):
    return await table_service.create_table(db_session, 1, location="Sala principale", capacity=4)


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, user.username, user.role, user.token_version)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
