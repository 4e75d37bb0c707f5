"""Shared pytest fixtures for backend tests."""

import os

# Point the application at SQLite before any quizbank module creates its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SMTP_HOST", "")

from typing import AsyncGenerator
from uuid import uuid4

import bcrypt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from quizbank.database import Base, get_db
from quizbank.main import app
from quizbank.models import Folder, Quiz, User
from quizbank.services.auth_service import create_access_token
from quizbank.services.owner_lock_service import owner_lock_service
from quizbank.services.quiz_service import QuizService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def get_test_password_hash(password: str) -> str:
    """
    Generate a password hash for testing.

    Uses bcrypt directly to avoid passlib version detection issues.
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


@pytest_asyncio.fixture
async def engine():
    """Create a test database engine with in-memory SQLite."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; take it over
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Everything runs inside one outer transaction that is rolled back at the
    end; commits made by the code under test only release savepoints.
    """
    async with engine.connect() as conn:
        outer = await conn.begin()
        session = AsyncSession(
            bind=conn,
            expire_on_commit=False,
            autoflush=False,
            join_transaction_mode="create_savepoint",
        )
        try:
            yield session
        finally:
            await session.close()
            await outer.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database dependency override."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    owner_lock_service._local_locks.clear()
    owner_lock_service._local_users.clear()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def _make_user(db_session: AsyncSession, email: str, password: str, display_name: str) -> User:
    user = User(
        id=uuid4(),
        email=email,
        password_hash=get_test_password_hash(password),
        display_name=display_name,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user (quiz owner in most tests)."""
    return await _make_user(db_session, "test@example.com", "TestPassword123!", "Test User")


@pytest_asyncio.fixture
async def test_user_2(db_session: AsyncSession) -> User:
    """Create a second test user."""
    return await _make_user(db_session, "test2@example.com", "TestPassword456!", "Test User 2")


@pytest_asyncio.fixture
async def test_user_3(db_session: AsyncSession) -> User:
    """Create a third, uninvolved test user."""
    return await _make_user(db_session, "test3@example.com", "TestPassword789!", "Test User 3")


@pytest.fixture
def auth_token(test_user: User) -> str:
    """Create an authentication token for the test user."""
    return create_access_token(data={"sub": str(test_user.id), "email": test_user.email})


@pytest.fixture
def auth_token_2(test_user_2: User) -> str:
    """Create an authentication token for the second test user."""
    return create_access_token(data={"sub": str(test_user_2.id), "email": test_user_2.email})


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    """Create authorization headers."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def auth_headers_2(auth_token_2: str) -> dict:
    """Create authorization headers for second user."""
    return {"Authorization": f"Bearer {auth_token_2}"}


def sample_questions(count: int = 2) -> list[dict]:
    """Valid multiple choice questions with distinct texts."""
    return [
        {
            "question": f"What is {n} + {n}?",
            "question_type": "multiple_choice",
            "options": [str(n), str(2 * n), str(3 * n)],
            "correct_answer": str(2 * n),
            "explanation": "",
            "points": 1,
        }
        for n in range(1, count + 1)
    ]


@pytest_asyncio.fixture
async def test_folder(db_session: AsyncSession, test_user: User) -> Folder:
    """Create a root-level folder owned by the test user."""
    folder = Folder(id=uuid4(), owner_id=test_user.id, name="Midterms")
    db_session.add(folder)
    await db_session.commit()
    return folder


@pytest_asyncio.fixture
async def test_quiz(db_session: AsyncSession, test_user: User) -> Quiz:
    """Create a private quiz owned by the test user."""
    return await QuizService(db_session).create_quiz(
        test_user.id,
        {"title": "Algebra I", "category": "mathematics", "questions": sample_questions()},
    )


@pytest.fixture
def questions() -> list[dict]:
    """Two valid questions for quiz payloads."""
    return sample_questions()
