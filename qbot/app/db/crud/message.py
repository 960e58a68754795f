"""Usage session lookups and message logging."""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.db.models import Message, Student, UsageSession


async def get_usage_session(session: AsyncSession, session_id: str) -> Optional[UsageSession]:
    result = await session.execute(select(UsageSession).where(UsageSession.id == session_id))
    return result.scalar_one_or_none()


async def list_sessions_for_chatbot(
    session: AsyncSession,
    chatbot_id: str
) -> List[tuple[UsageSession, str, str]]:
    """Usage sessions of a chatbot, newest first.

    Returns:
        List of (usage_session, student_name, student_number) tuples
    """
    result = await session.execute(
        select(UsageSession, Student.name, Student.student_number)
        .join(Student, Student.id == UsageSession.student_id)
        .where(UsageSession.chatbot_id == chatbot_id)
        .order_by(UsageSession.created_at.desc())
    )
    return [(row[0], row[1], row[2]) for row in result.all()]


async def create_message(
    session: AsyncSession,
    session_id: str,
    sender: str,
    message: str,
    image_url: Optional[str] = None,
    auto_commit: bool = True
) -> Message:
    row = Message(session_id=session_id, sender=sender, message=message, image_url=image_url)
    session.add(row)
    await session.flush()
    if auto_commit:
        await session.commit()
    return row


async def list_messages_for_session(session: AsyncSession, session_id: str) -> List[Message]:
    """Transcript of a usage session in the order it was written."""
    result = await session.execute(
        select(Message)
        .where(Message.session_id == session_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return list(result.scalars().all())
