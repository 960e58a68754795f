"""LLM evaluation of learning goals against a session transcript."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.core.config import settings
from qbot.app.core.logging import get_log_context, get_logger
from qbot.app.db.crud import (
    get_usage_session,
    list_goals_for_chatbot,
    list_messages_for_session,
    mark_goals_pending,
    upsert_goal_evaluation,
)
from qbot.app.db.models import LearningGoal, Message
from qbot.app.exceptions import (
    EmptyTranscriptError,
    ResourceNotFoundError,
    UpstreamFailureError,
)
from qbot.app.services.llm import LLMClient
from qbot.app.services.ownership import assert_owns_chatbot

logger = get_logger(__name__)


class GoalVerdict(BaseModel):
    goal_id: str
    achieved: bool
    reason: str = ""


@dataclass
class EvaluationOutcome:
    status: str  # evaluated | pending | no_goals
    results: List[GoalVerdict] = field(default_factory=list)
    message: Optional[str] = None


def build_evaluation_messages(
    goals: Sequence[LearningGoal],
    transcript: Sequence[Message],
    language: Optional[str] = None,
) -> List[Dict[str, str]]:
    """Build the system and user prompts for one evaluation call."""
    language = language or settings.evaluation_language
    system_prompt = (
        "You are an education expert reviewing a conversation between a student "
        "and an AI chatbot. Judge, from the student's own statements, whether each "
        "learning goal was achieved: did the student understand and explain it, and "
        "use the related key terms? Mark each goal achieved (true) or not (false) "
        f"and give a one or two sentence reason written in {language}."
    )

    goal_lines = []
    for index, goal in enumerate(goals, start=1):
        goal_lines.append(f"Goal {index} (ID: {goal.id}): {goal.goal_text}")
        if goal.expected_keywords:
            goal_lines.append(f"  - Key terms: {', '.join(goal.expected_keywords)}")

    conversation_lines = []
    for msg in transcript:
        speaker = "Student" if msg.sender == "student" else "Chatbot"
        suffix = " (image attached)" if msg.image_url else ""
        conversation_lines.append(f"{speaker}: {msg.message}{suffix}")

    user_prompt = (
        "Learning goals to evaluate:\n"
        + "\n".join(goal_lines)
        + "\n\nConversation:\n--- start ---\n"
        + "\n".join(conversation_lines)
        + "\n--- end ---\n\n"
        'Respond with a JSON object of the form {"evaluations": [{"goal_id": '
        '"<goal ID>", "achieved": true or false, "reason": "<reason>"}]} with '
        "one entry per goal."
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def parse_evaluations(content: str, known_goal_ids: Sequence[str]) -> List[GoalVerdict]:
    """Parse the model output into verdicts for known goals.

    Accepts a bare array or an object with an ``evaluations`` array. Verdicts
    for goal ids that are not in ``known_goal_ids`` are dropped; for a goal
    listed twice the last verdict wins.

    Raises:
        ValueError: The content is not JSON of either shape, or an entry does
            not validate.
    """
    try:
        data: Any = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"evaluation is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("evaluations")
    if not isinstance(data, list):
        raise ValueError("evaluation must be an array or an object with 'evaluations'")

    known = set(known_goal_ids)
    verdicts: Dict[str, GoalVerdict] = {}
    for item in data:
        try:
            verdict = GoalVerdict.model_validate(item)
        except ValidationError as e:
            raise ValueError(f"invalid evaluation entry: {e}") from e
        if verdict.goal_id not in known:
            logger.warning(f"Dropping verdict for unknown goal {verdict.goal_id}")
            continue
        verdicts[verdict.goal_id] = verdict
    return list(verdicts.values())


async def evaluate_session_goals(
    session: AsyncSession,
    teacher_id: str,
    session_id: str,
    llm: LLMClient,
) -> EvaluationOutcome:
    """Evaluate every learning goal of a session's chatbot and store the verdicts.

    When the LLM cannot be reached, or answers with something unusable, all
    goals are marked pending instead.

    Raises:
        ResourceNotFoundError: Unknown session
        ChatbotNotFoundError, NotChatbotOwnerError: from the ownership check
        EmptyTranscriptError: The session has no messages
    """
    usage = await get_usage_session(session, session_id)
    if usage is None:
        raise ResourceNotFoundError("Session")

    await assert_owns_chatbot(session, teacher_id, usage.chatbot_id)

    goals = await list_goals_for_chatbot(session, usage.chatbot_id)
    if not goals:
        return EvaluationOutcome(
            status="no_goals",
            message="No learning goals set for this chatbot. Evaluation skipped.",
        )

    transcript = await list_messages_for_session(session, session_id)
    if not transcript:
        raise EmptyTranscriptError()

    goal_ids = [goal.id for goal in goals]
    log_extra = get_log_context(
        teacher_id=teacher_id,
        student_id=usage.student_id,
        chatbot_id=usage.chatbot_id,
        session_id=session_id,
    )

    try:
        content = await llm.complete_json(build_evaluation_messages(goals, transcript))
        verdicts = parse_evaluations(content, goal_ids)
    except (UpstreamFailureError, ValueError) as e:
        logger.warning(f"Goal evaluation deferred: {e}", extra=log_extra)
        await mark_goals_pending(
            session, usage.student_id, usage.chatbot_id, goal_ids
        )
        return EvaluationOutcome(
            status="pending",
            message="Evaluation service unavailable. Goals marked pending.",
        )

    for verdict in verdicts:
        await upsert_goal_evaluation(
            session,
            usage.student_id,
            usage.chatbot_id,
            verdict.goal_id,
            achieved=verdict.achieved,
            comment=verdict.reason,
            auto_commit=False,
        )
    await session.commit()

    logger.info(f"Evaluated {len(verdicts)}/{len(goals)} goals", extra=log_extra)
    return EvaluationOutcome(status="evaluated", results=verdicts)
