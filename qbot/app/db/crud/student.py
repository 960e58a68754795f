"""Student CRUD operations."""
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.db.models import (
    Message,
    SchoolClass,
    Student,
    StudentGoalResponse,
    UsageSession,
)


async def lookup_student_by_hash(
    session: AsyncSession,
    api_key_hash: str
) -> Optional[Student]:
    """Find a student by the hash of their current bearer token.

    Args:
        session: Database session from FastAPI dependency
        api_key_hash: The hashed token to look up

    Returns:
        Student object if found, None otherwise
    """
    result = await session.execute(
        select(Student).where(Student.api_key_hash == api_key_hash)
    )
    return result.scalar_one_or_none()


async def get_student_by_id(session: AsyncSession, student_id: str) -> Optional[Student]:
    result = await session.execute(select(Student).where(Student.id == student_id))
    return result.scalar_one_or_none()


async def get_student_by_number(
    session: AsyncSession,
    student_number: str
) -> Optional[Student]:
    result = await session.execute(
        select(Student).where(Student.student_number == student_number)
    )
    return result.scalar_one_or_none()


async def get_student_for_teacher(
    session: AsyncSession,
    student_id: str,
    teacher_id: str
) -> Optional[Student]:
    result = await session.execute(
        select(Student).where(Student.id == student_id, Student.teacher_id == teacher_id)
    )
    return result.scalar_one_or_none()


async def list_students_for_teacher(
    session: AsyncSession,
    teacher_id: str,
    class_id: Optional[str] = None
) -> List[tuple[Student, Optional[str]]]:
    """List a teacher's students with their class name, ordered by student number.

    Returns:
        List of (student, class_name) tuples; class_name is None when unassigned.
    """
    stmt = (
        select(Student, SchoolClass.name)
        .outerjoin(SchoolClass, SchoolClass.id == Student.class_id)
        .where(Student.teacher_id == teacher_id)
        .order_by(Student.student_number.asc())
    )
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    result = await session.execute(stmt)
    return [(row[0], row[1]) for row in result.all()]


async def list_student_ids_in_class(
    session: AsyncSession,
    teacher_id: str,
    class_name: str
) -> List[str]:
    """Ids of the teacher's students enrolled in the teacher's class of this name."""
    result = await session.execute(
        select(Student.id)
        .join(SchoolClass, SchoolClass.id == Student.class_id)
        .where(
            Student.teacher_id == teacher_id,
            SchoolClass.teacher_id == teacher_id,
            SchoolClass.name == class_name,
        )
    )
    return list(result.scalars().all())


async def create_student(
    session: AsyncSession,
    teacher_id: str,
    name: str,
    student_number: str,
    password_salt: str,
    password_hash: str,
    class_id: Optional[str] = None,
    auto_commit: bool = True
) -> Student:
    """Enroll a student.

    Raises:
        IntegrityError: If the student number is already taken.
    """
    student = Student(
        teacher_id=teacher_id,
        name=name,
        student_number=student_number,
        password_salt=password_salt,
        password_hash=password_hash,
        class_id=class_id,
    )
    session.add(student)
    await session.flush()
    if auto_commit:
        await session.commit()
    return student


async def set_student_token(
    session: AsyncSession,
    student: Student,
    api_key_hash: Optional[str],
    auto_commit: bool = True
) -> None:
    """Replace the student's bearer token hash; None revokes it."""
    student.api_key_hash = api_key_hash
    await session.flush()
    if auto_commit:
        await session.commit()


async def delete_student(
    session: AsyncSession,
    student: Student,
    auto_commit: bool = True
) -> None:
    """Delete a student together with its sessions, messages and goal responses."""
    session_ids = select(UsageSession.id).where(UsageSession.student_id == student.id)
    await session.execute(delete(Message).where(Message.session_id.in_(session_ids)))
    await session.execute(delete(UsageSession).where(UsageSession.student_id == student.id))
    await session.execute(
        delete(StudentGoalResponse).where(StudentGoalResponse.student_id == student.id)
    )
    await session.delete(student)
    await session.flush()
    if auto_commit:
        await session.commit()
