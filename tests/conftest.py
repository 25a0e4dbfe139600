"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.jwt import mint_access_token, reset_keys
from predictearn.config import get_settings
from predictearn.database import close_db, get_engine, init_db
from predictearn.db.base import Base
from predictearn.db.models import Question, User
from predictearn.predictions.cache import reset_prediction_cache
from predictearn.predictions.secret_store import get_secret_store
from predictearn.system_settings.service import seed_system_settings

TEST_ENCRYPTION_KEY = "test-encryption-key-for-the-suite"
TEST_JWT_SECRET = "test-jwt-secret-for-the-suite-0123456789"


def _reset_caches() -> None:
    get_settings.cache_clear()
    get_secret_store.cache_clear()
    reset_keys()
    reset_prediction_cache()


@pytest.fixture(autouse=True)
def test_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point every test at its own SQLite file and fixed secrets."""
    monkeypatch.setenv("PE_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("PE_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("PE_JWT_ALGORITHM", "HS256")
    monkeypatch.setenv("PE_ENCRYPTION_KEY", TEST_ENCRYPTION_KEY)
    monkeypatch.setenv("PE_LOG_FORMAT", "console")
    monkeypatch.setenv("PE_WEBHOOK_SECRET", "")
    _reset_caches()
    yield get_settings()
    _reset_caches()


@pytest_asyncio.fixture
async def database(test_settings) -> AsyncGenerator[None, None]:
    """Fresh schema from model metadata, with default system settings seeded."""
    await init_db(test_settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        await seed_system_settings(session)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service calls and assertions."""
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app. Redis is not initialized, so rate limiting passes through."""
    from predictearn.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory inserting users directly. Password hashing is skipped."""
    counter = {"n": 0}

    async def _make(
        name: str | None = None,
        role: str = "user",
        points: int = 0,
        email: str | None = None,
        referral_code: str | None = None,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"Player {n}",
            email=email or f"player{n}@example.com",
            password_hash="not-a-real-hash",
            role=role,
            points=points,
            order_points=0,
            referral_code=referral_code,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def make_question(db_session: AsyncSession) -> Callable[..., Awaitable[Question]]:
    async def _make(
        text: str = "What is 2 + 2?",
        answer: str = "4",
        points: int = 10,
        is_priority: bool = False,
        status: str = "active",
    ) -> Question:
        question = Question(
            question_text=text,
            answer=answer,
            points=points,
            is_priority=is_priority,
            status=status,
            display_count=0,
        )
        db_session.add(question)
        await db_session.commit()
        await db_session.refresh(question)
        return question

    return _make


def auth_headers(user_id: int, role: str = "user") -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_access_token(user_id, role)}"}
