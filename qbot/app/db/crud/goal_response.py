"""Student goal response upserts.

Rows are keyed by (student_id, chatbot_id, goal_id); every write here either
updates the existing row for that triple or inserts it.
"""
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.db.models import StudentGoalResponse, utcnow


async def _get_or_new(
    session: AsyncSession,
    student_id: str,
    chatbot_id: str,
    goal_id: str
) -> StudentGoalResponse:
    result = await session.execute(
        select(StudentGoalResponse).where(
            StudentGoalResponse.student_id == student_id,
            StudentGoalResponse.chatbot_id == chatbot_id,
            StudentGoalResponse.goal_id == goal_id,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = StudentGoalResponse(
            student_id=student_id,
            chatbot_id=chatbot_id,
            goal_id=goal_id,
            evaluation_status="none",
        )
        session.add(row)
    return row


async def upsert_goal_evaluation(
    session: AsyncSession,
    student_id: str,
    chatbot_id: str,
    goal_id: str,
    achieved: bool,
    comment: Optional[str],
    auto_commit: bool = True
) -> StudentGoalResponse:
    """Store an AI verdict, overwriting any earlier one for the same goal."""
    row = await _get_or_new(session, student_id, chatbot_id, goal_id)
    row.evaluated_by_ai = achieved
    row.evaluation_comment = comment
    row.evaluation_status = "evaluated"
    row.updated_at = utcnow()
    await session.flush()
    if auto_commit:
        await session.commit()
    return row


async def mark_goals_pending(
    session: AsyncSession,
    student_id: str,
    chatbot_id: str,
    goal_ids: Iterable[str],
    auto_commit: bool = True
) -> int:
    """Flag goals as awaiting evaluation. Earlier verdicts are left in place."""
    count = 0
    for goal_id in goal_ids:
        row = await _get_or_new(session, student_id, chatbot_id, goal_id)
        row.evaluation_status = "pending"
        row.updated_at = utcnow()
        count += 1
    await session.flush()
    if auto_commit:
        await session.commit()
    return count


async def upsert_student_check(
    session: AsyncSession,
    student_id: str,
    chatbot_id: str,
    goal_id: str,
    checked: bool,
    auto_commit: bool = True
) -> StudentGoalResponse:
    row = await _get_or_new(session, student_id, chatbot_id, goal_id)
    row.checked_by_student = checked
    row.updated_at = utcnow()
    await session.flush()
    if auto_commit:
        await session.commit()
    return row


async def list_responses_for_student(
    session: AsyncSession,
    student_id: str,
    chatbot_id: str
) -> List[StudentGoalResponse]:
    result = await session.execute(
        select(StudentGoalResponse).where(
            StudentGoalResponse.student_id == student_id,
            StudentGoalResponse.chatbot_id == chatbot_id,
        )
    )
    return list(result.scalars().all())
