"""
Pytest fixtures - in-memory database, API client, users and auth headers.
Environment is pinned before the app is imported: settings are cached.
"""

import os
import tempfile
from typing import AsyncGenerator

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./marketbook-test.db"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="marketbook-media-")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketbook.core.security import create_access_token, hash_password
from marketbook.db.base import Base
from marketbook.db.models import User
from marketbook.db.session import get_db
from marketbook.main import app

# One shared in-memory connection per test
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session() as s:
        yield s


@pytest_asyncio.fixture
async def client(session: AsyncSession):
    async def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session: AsyncSession):
    async def _make(email: str, *, name: str = "Test User", role: str = "user",
                    password: str = "secret1") -> User:
        user = User(name=name, email=email, hashed_password=hash_password(password), role=role)
        session.add(user)
        await session.flush()
        await session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def alice(make_user) -> User:
    return await make_user("alice@x.com", name="Alice")


@pytest_asyncio.fixture
async def bob(make_user) -> User:
    return await make_user("bob@x.com", name="Bob")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("admin@x.com", name="Admin", role="admin")


@pytest.fixture
def auth():
    """auth(user) -> Authorization header for that user."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def chair() -> dict:
    return {"name": "Chair", "description": "Wood chair", "category": "Furniture", "price": 5000}
