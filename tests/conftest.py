import asyncio
from typing import Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from qbot.app.core.security import generate_api_key, hash_api_key, hash_password
from qbot.app.db.async_session import enable_sqlite_foreign_keys, get_db
from qbot.app.db.base import Base
from qbot.app.db.models import (
    Chatbot,
    LearningGoal,
    Message,
    SchoolClass,
    Student,
    Teacher,
    UsageSession,
)
from qbot.app.main import create_app
from qbot.app.middleware.auth import get_admin_token

DEFAULT_PASSWORD = "pw-1234"


def _sqlite_url_from_absolute_path(path: str) -> str:
    # SQLAlchemy expects 4 slashes for absolute paths. The path already starts
    # with '/', so strip it when appending after '////'.
    return f"sqlite+aiosqlite:////{path.lstrip('/')}"


def make_engine(tmp_path):
    engine = create_async_engine(
        _sqlite_url_from_absolute_path(str(tmp_path / "qbot_test.db")),
        poolclass=NullPool,
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)
    return engine


async def _create_all(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def clear_admin_token_cache() -> None:
    if hasattr(get_admin_token, "_cached_token"):
        delattr(get_admin_token, "_cached_token")


class Seeder:
    """Inserts fixture rows, each in its own committed transaction."""

    def __init__(self, session_maker):
        self.session_maker = session_maker

    async def _add(self, row):
        async with self.session_maker() as session:
            session.add(row)
            await session.commit()
        return row

    async def teacher(self, name: str = "Ms. Kim", email: Optional[str] = None):
        """Returns (teacher, raw_token)."""
        token = generate_api_key()
        teacher = Teacher(
            name=name,
            email=email or f"{generate_api_key(6)}@school.test",
            api_key_hash=hash_api_key(token),
        )
        await self._add(teacher)
        return teacher, token

    async def school_class(self, teacher: Teacher, name: str) -> SchoolClass:
        return await self._add(SchoolClass(teacher_id=teacher.id, name=name))

    async def student(
        self,
        teacher: Teacher,
        student_number: Optional[str] = None,
        school_class: Optional[SchoolClass] = None,
        name: str = "Student",
        password: str = DEFAULT_PASSWORD,
    ):
        """Returns (student, raw_token); the token is already active."""
        token = generate_api_key()
        salt, hashed = hash_password(password)
        student = Student(
            teacher_id=teacher.id,
            name=name,
            student_number=student_number or generate_api_key(6),
            password_salt=salt,
            password_hash=hashed,
            class_id=school_class.id if school_class else None,
            api_key_hash=hash_api_key(token),
        )
        await self._add(student)
        return student, token

    async def chatbot(self, teacher: Teacher, **fields) -> Chatbot:
        fields.setdefault("name", "Photosynthesis Tutor")
        fields.setdefault("system_prompt", "You are a patient science tutor.")
        return await self._add(Chatbot(teacher_id=teacher.id, **fields))

    async def goal(self, chatbot: Chatbot, goal_text: str, keywords=None) -> LearningGoal:
        return await self._add(
            LearningGoal(chatbot_id=chatbot.id, goal_text=goal_text, expected_keywords=keywords)
        )

    async def usage_session(
        self, student: Student, chatbot: Chatbot, attempt_number: int = 1
    ) -> UsageSession:
        return await self._add(
            UsageSession(
                student_id=student.id,
                chatbot_id=chatbot.id,
                attempt_number=attempt_number,
            )
        )

    async def message(self, usage: UsageSession, sender: str, text: str) -> Message:
        return await self._add(Message(session_id=usage.id, sender=sender, message=text))


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def session_factory(tmp_path):
    """Session maker over a fresh file-backed SQLite database (sync tests)."""
    engine = make_engine(tmp_path)
    asyncio.run(_create_all(engine))
    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def app(session_factory):
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


@pytest_asyncio.fixture
async def async_session_factory(tmp_path):
    """Session maker for tests running inside the pytest-asyncio loop."""
    engine = make_engine(tmp_path)
    await _create_all(engine)
    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def aseed(async_session_factory) -> Seeder:
    return Seeder(async_session_factory)
