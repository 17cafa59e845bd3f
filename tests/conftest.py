"""
Shared fixtures — settings, a per-test SQLite database and an HTTP client.
"""

import os

# Keep the module-level engine off the production driver.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unused-test.db")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config.settings import config
from database.models import Base
from database.session import get_db_session

TEST_SECRET = "test-signing-secret"
ADMIN_EMAIL = "root@example.com"
ADMIN_PASSWORD = "break-glass-pw"


@pytest.fixture(autouse=True)
def settings(monkeypatch):
    monkeypatch.setattr(config, "jwt_secret", TEST_SECRET)
    monkeypatch.setattr(config, "admin_email", ADMIN_EMAIL)
    monkeypatch.setattr(config, "admin_password", ADMIN_PASSWORD)
    return config


@pytest.fixture
async def test_engine(tmp_path):
    # File-backed so concurrent requests get separate connections.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(test_session_factory):
    """HTTP client against the app with ``get_db_session`` pointed at the test DB."""
    from main import app

    async def override_get_db_session():
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def signup(client: AsyncClient, email: str, password: str = "secret1") -> str:
    r = await client.post("/api/signup", json={"email": email, "password": password})
    assert r.status_code == 201, r.text
    return r.json()["token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
