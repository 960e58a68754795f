"""Feedback dashboard aggregates for a teacher's chatbots."""

from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.db.models import Chatbot, LearningGoal, StudentGoalResponse, UsageSession


def _rate(achieved: int, total: int) -> float:
    """Percentage rounded to one decimal; 0.0 when there is nothing to rate."""
    if total == 0:
        return 0.0
    return round(achieved / total * 100, 1)


async def build_feedback_dashboard(session: AsyncSession, teacher_id: str) -> Dict[str, Any]:
    """Per-chatbot participation and per-goal self-check achievement.

    Returns:
        {"chatbot_stats": [...], "goal_stats": [...]}; goal_stats is sorted by
        achievement rate, lowest first.
    """
    chatbots = (
        await session.execute(
            select(Chatbot.id, Chatbot.name)
            .where(Chatbot.teacher_id == teacher_id)
            .order_by(Chatbot.created_at.asc())
        )
    ).all()
    if not chatbots:
        return {"chatbot_stats": [], "goal_stats": []}

    chatbot_ids = [row[0] for row in chatbots]

    sessions = (
        await session.execute(
            select(UsageSession.chatbot_id, UsageSession.student_id)
            .where(UsageSession.chatbot_id.in_(chatbot_ids))
        )
    ).all()

    responses = (
        await session.execute(
            select(
                StudentGoalResponse.chatbot_id,
                StudentGoalResponse.goal_id,
                StudentGoalResponse.checked_by_student,
                LearningGoal.goal_text,
            )
            .join(LearningGoal, LearningGoal.id == StudentGoalResponse.goal_id)
            .where(StudentGoalResponse.chatbot_id.in_(chatbot_ids))
        )
    ).all()

    chatbot_stats: List[Dict[str, Any]] = []
    for chatbot_id, name in chatbots:
        chatbot_sessions = [s for s in sessions if s[0] == chatbot_id]
        chatbot_responses = [r for r in responses if r[0] == chatbot_id]
        achieved = sum(1 for r in chatbot_responses if r[2] is True)
        chatbot_stats.append({
            "id": chatbot_id,
            "name": name,
            "participant_count": len({s[1] for s in chatbot_sessions}),
            "session_count": len(chatbot_sessions),
            "average_student_achievement_rate": _rate(achieved, len(chatbot_responses)),
        })

    goal_totals: Dict[str, Dict[str, Any]] = {}
    for _, goal_id, checked, goal_text in responses:
        stats = goal_totals.setdefault(
            goal_id, {"goal_id": goal_id, "goal_text": goal_text, "total": 0, "achieved": 0}
        )
        stats["total"] += 1
        if checked is True:
            stats["achieved"] += 1

    goal_stats = [
        {**stats, "achievement_rate": _rate(stats["achieved"], stats["total"])}
        for stats in goal_totals.values()
    ]
    goal_stats.sort(key=lambda s: s["achievement_rate"])

    return {"chatbot_stats": chatbot_stats, "goal_stats": goal_stats}
