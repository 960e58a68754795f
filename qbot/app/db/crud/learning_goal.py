"""Learning goal CRUD operations."""
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.db.models import Chatbot, LearningGoal, StudentGoalResponse


async def list_goals_for_chatbot(session: AsyncSession, chatbot_id: str) -> List[LearningGoal]:
    result = await session.execute(
        select(LearningGoal)
        .where(LearningGoal.chatbot_id == chatbot_id)
        .order_by(LearningGoal.created_at.asc(), LearningGoal.id.asc())
    )
    return list(result.scalars().all())


async def get_goal_for_teacher(
    session: AsyncSession,
    goal_id: str,
    teacher_id: str
) -> Optional[LearningGoal]:
    """Get a learning goal only if its chatbot belongs to the given teacher."""
    result = await session.execute(
        select(LearningGoal)
        .join(Chatbot, Chatbot.id == LearningGoal.chatbot_id)
        .where(LearningGoal.id == goal_id, Chatbot.teacher_id == teacher_id)
    )
    return result.scalar_one_or_none()


async def create_goal(
    session: AsyncSession,
    chatbot_id: str,
    goal_text: str,
    expected_keywords: Optional[List[str]] = None,
    auto_commit: bool = True
) -> LearningGoal:
    goal = LearningGoal(
        chatbot_id=chatbot_id,
        goal_text=goal_text,
        expected_keywords=expected_keywords,
    )
    session.add(goal)
    await session.flush()
    if auto_commit:
        await session.commit()
    return goal


async def update_goal(
    session: AsyncSession,
    goal: LearningGoal,
    goal_text: Optional[str] = None,
    expected_keywords: Optional[List[str]] = None,
    auto_commit: bool = True
) -> LearningGoal:
    if goal_text is not None:
        goal.goal_text = goal_text
    if expected_keywords is not None:
        goal.expected_keywords = expected_keywords
    await session.flush()
    if auto_commit:
        await session.commit()
    return goal


async def delete_goal(
    session: AsyncSession,
    goal: LearningGoal,
    auto_commit: bool = True
) -> None:
    await session.execute(
        delete(StudentGoalResponse).where(StudentGoalResponse.goal_id == goal.id)
    )
    await session.delete(goal)
    await session.flush()
    if auto_commit:
        await session.commit()
