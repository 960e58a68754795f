"""Tests for SqlAlchemyUsageGateRepository against SQLite."""

import pytest
from sqlalchemy import func, select

from qbot.app.db.models import Message, UsageSession
from qbot.app.exceptions import AttemptConflictError, QuotaExceededError
from qbot.app.services.gate import (
    AttemptLimit,
    SqlAlchemyUsageGateRepository,
    UsageGate,
)


async def _count_rows(session_factory, model) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_find_student_profile_includes_class(async_session_factory, aseed):
    teacher, _ = await aseed.teacher()
    school_class = await aseed.school_class(teacher, "3-1")
    student, _ = await aseed.student(teacher, school_class=school_class)

    async with async_session_factory() as session:
        profile = await SqlAlchemyUsageGateRepository(session).find_student_profile(student.id)

    assert profile.id == student.id
    assert profile.class_id == school_class.id
    assert profile.class_name == "3-1"
    assert profile.class_teacher_id == teacher.id


@pytest.mark.asyncio
async def test_find_student_profile_missing(async_session_factory):
    async with async_session_factory() as session:
        assert await SqlAlchemyUsageGateRepository(session).find_student_profile("nope") is None


@pytest.mark.asyncio
async def test_find_chatbot_config_maps_columns(async_session_factory, aseed):
    teacher, _ = await aseed.teacher()
    chatbot = await aseed.chatbot(teacher, allowed_classes=["3-1"], max_attempts=0)
    open_bot = await aseed.chatbot(teacher, allowed_classes=None, max_attempts=None)

    async with async_session_factory() as session:
        repo = SqlAlchemyUsageGateRepository(session)
        config = await repo.find_chatbot_config(chatbot.id)
        open_config = await repo.find_chatbot_config(open_bot.id)

    assert config.teacher_id == teacher.id
    assert config.allowed_classes == frozenset({"3-1"})
    assert config.limit == AttemptLimit.zero()
    assert open_config.is_open
    assert open_config.limit == AttemptLimit.unlimited()


@pytest.mark.asyncio
async def test_duplicate_attempt_number_is_conflict(async_session_factory, aseed):
    teacher, _ = await aseed.teacher()
    student, _ = await aseed.student(teacher)
    chatbot = await aseed.chatbot(teacher)

    async with async_session_factory() as session:
        repo = SqlAlchemyUsageGateRepository(session)
        first = await repo.insert_session(student.id, chatbot.id, 1)
        with pytest.raises(AttemptConflictError):
            await repo.insert_session(student.id, chatbot.id, 1)

        # The session is usable again after the conflict
        assert await repo.count_sessions(student.id, chatbot.id) == 1
        second = await repo.insert_session(student.id, chatbot.id, 2)

    assert first.attempt_number == 1
    assert second.attempt_number == 2
    assert await _count_rows(async_session_factory, UsageSession) == 2


@pytest.mark.asyncio
async def test_gate_over_sql_repository(async_session_factory, aseed):
    teacher, _ = await aseed.teacher()
    student, _ = await aseed.student(teacher)
    chatbot = await aseed.chatbot(teacher, max_attempts=2)
    await aseed.usage_session(student, chatbot, attempt_number=1)

    async with async_session_factory() as session:
        gate = UsageGate(SqlAlchemyUsageGateRepository(session))
        started = await gate.start_session(student.id, chatbot.id)
        with pytest.raises(QuotaExceededError):
            await gate.start_session(student.id, chatbot.id)

    assert started.current_attempts == 2
    assert started.max_attempts == 2
    assert await _count_rows(async_session_factory, UsageSession) == 2


@pytest.mark.asyncio
async def test_delete_sessions_scopes(async_session_factory, aseed):
    """Deletions are committed by the repository, like inserts."""
    teacher, _ = await aseed.teacher()
    alice, _ = await aseed.student(teacher, name="Alice")
    bob, _ = await aseed.student(teacher, name="Bob")
    chatbot = await aseed.chatbot(teacher)
    other_bot = await aseed.chatbot(teacher, name="Other")
    usage = await aseed.usage_session(alice, chatbot, 1)
    await aseed.message(usage, "student", "hello")
    await aseed.usage_session(alice, chatbot, 2)
    await aseed.usage_session(bob, chatbot, 1)
    await aseed.usage_session(alice, other_bot, 1)

    async with async_session_factory() as session:
        repo = SqlAlchemyUsageGateRepository(session)
        assert await repo.delete_sessions(chatbot.id, teacher.id, []) == 0
        assert await repo.delete_sessions(chatbot.id, teacher.id, [alice.id]) == 2

    assert await _count_rows(async_session_factory, Message) == 0

    async with async_session_factory() as session:
        repo = SqlAlchemyUsageGateRepository(session)
        assert await repo.count_sessions(bob.id, chatbot.id) == 1
        assert await repo.delete_sessions(chatbot.id, teacher.id) == 1

    # Untouched chatbot keeps its session
    assert await _count_rows(async_session_factory, UsageSession) == 1


@pytest.mark.asyncio
async def test_delete_sessions_filters_on_owner(async_session_factory, aseed):
    owner, _ = await aseed.teacher()
    intruder, _ = await aseed.teacher()
    student, _ = await aseed.student(owner)
    chatbot = await aseed.chatbot(owner)
    await aseed.usage_session(student, chatbot, 1)

    async with async_session_factory() as session:
        deleted = await SqlAlchemyUsageGateRepository(session).delete_sessions(
            chatbot.id, intruder.id
        )

    assert deleted == 0
    assert await _count_rows(async_session_factory, UsageSession) == 1
