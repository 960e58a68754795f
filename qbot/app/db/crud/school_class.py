"""Class (student group) CRUD operations."""
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.db.models import SchoolClass, Student


async def list_classes(session: AsyncSession, teacher_id: str) -> List[SchoolClass]:
    result = await session.execute(
        select(SchoolClass)
        .where(SchoolClass.teacher_id == teacher_id)
        .order_by(SchoolClass.name.asc())
    )
    return list(result.scalars().all())


async def get_class_for_teacher(
    session: AsyncSession,
    class_id: str,
    teacher_id: str
) -> Optional[SchoolClass]:
    """Get a class only if it belongs to the given teacher."""
    result = await session.execute(
        select(SchoolClass).where(
            SchoolClass.id == class_id,
            SchoolClass.teacher_id == teacher_id,
        )
    )
    return result.scalar_one_or_none()


async def create_class(
    session: AsyncSession,
    teacher_id: str,
    name: str,
    auto_commit: bool = True
) -> SchoolClass:
    """Create a class.

    Raises:
        IntegrityError: If the teacher already has a class with this name.
    """
    school_class = SchoolClass(teacher_id=teacher_id, name=name)
    session.add(school_class)
    await session.flush()
    if auto_commit:
        await session.commit()
    return school_class


async def rename_class(
    session: AsyncSession,
    school_class: SchoolClass,
    name: str,
    auto_commit: bool = True
) -> SchoolClass:
    school_class.name = name
    await session.flush()
    if auto_commit:
        await session.commit()
    return school_class


async def delete_class(
    session: AsyncSession,
    school_class: SchoolClass,
    auto_commit: bool = True
) -> None:
    """Delete a class; its students stay enrolled with the teacher, unassigned."""
    await session.execute(
        update(Student)
        .where(Student.class_id == school_class.id)
        .values(class_id=None)
    )
    await session.delete(school_class)
    await session.flush()
    if auto_commit:
        await session.commit()
