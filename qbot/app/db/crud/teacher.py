"""Teacher CRUD operations."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.db.models import Teacher


async def lookup_teacher_by_hash(
    session: AsyncSession,
    api_key_hash: str
) -> Optional[Teacher]:
    """Find a teacher by the hash of their API key."""
    result = await session.execute(
        select(Teacher).where(Teacher.api_key_hash == api_key_hash)
    )
    return result.scalar_one_or_none()


async def get_teacher_by_id(session: AsyncSession, teacher_id: str) -> Optional[Teacher]:
    result = await session.execute(select(Teacher).where(Teacher.id == teacher_id))
    return result.scalar_one_or_none()


async def create_teacher(
    session: AsyncSession,
    name: str,
    email: str,
    api_key_hash: str,
    auto_commit: bool = True
) -> Teacher:
    """Create a teacher account.

    Raises:
        IntegrityError: If the email is already registered.
    """
    teacher = Teacher(name=name, email=email, api_key_hash=api_key_hash)
    session.add(teacher)
    await session.flush()
    if auto_commit:
        await session.commit()
    return teacher
