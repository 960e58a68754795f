"""Chatbot CRUD operations."""
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.db.models import (
    Chatbot,
    LearningGoal,
    Message,
    StudentGoalResponse,
    UsageSession,
)


async def get_chatbot_by_id(session: AsyncSession, chatbot_id: str) -> Optional[Chatbot]:
    result = await session.execute(select(Chatbot).where(Chatbot.id == chatbot_id))
    return result.scalar_one_or_none()


async def get_chatbot_by_slug(session: AsyncSession, slug: str) -> Optional[Chatbot]:
    result = await session.execute(select(Chatbot).where(Chatbot.slug == slug))
    return result.scalar_one_or_none()


async def list_chatbots_for_teacher(session: AsyncSession, teacher_id: str) -> List[Chatbot]:
    result = await session.execute(
        select(Chatbot)
        .where(Chatbot.teacher_id == teacher_id)
        .order_by(Chatbot.created_at.desc())
    )
    return list(result.scalars().all())


async def create_chatbot(
    session: AsyncSession,
    teacher_id: str,
    fields: Dict[str, Any],
    auto_commit: bool = True
) -> Chatbot:
    """Create a chatbot owned by ``teacher_id``.

    Raises:
        IntegrityError: If the slug is already in use.
    """
    chatbot = Chatbot(teacher_id=teacher_id, **fields)
    session.add(chatbot)
    await session.flush()
    if auto_commit:
        await session.commit()
    return chatbot


async def update_chatbot(
    session: AsyncSession,
    chatbot: Chatbot,
    fields: Dict[str, Any],
    auto_commit: bool = True
) -> Chatbot:
    for key, value in fields.items():
        setattr(chatbot, key, value)
    await session.flush()
    if auto_commit:
        await session.commit()
    return chatbot


async def delete_chatbot(
    session: AsyncSession,
    chatbot: Chatbot,
    auto_commit: bool = True
) -> None:
    """Delete a chatbot with its goals, goal responses, sessions and messages."""
    session_ids = select(UsageSession.id).where(UsageSession.chatbot_id == chatbot.id)
    await session.execute(delete(Message).where(Message.session_id.in_(session_ids)))
    await session.execute(delete(UsageSession).where(UsageSession.chatbot_id == chatbot.id))
    await session.execute(
        delete(StudentGoalResponse).where(StudentGoalResponse.chatbot_id == chatbot.id)
    )
    await session.execute(delete(LearningGoal).where(LearningGoal.chatbot_id == chatbot.id))
    await session.delete(chatbot)
    await session.flush()
    if auto_commit:
        await session.commit()
