"""Student-facing chatbot endpoints.

Starting a session goes through the usage gate; the goal endpoints apply the
same profile and class checks without consuming an attempt.
"""

from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, field_validator

from qbot.app.api.deps import UsageGateDep
from qbot.app.db.crud import (
    create_message,
    get_chatbot_by_slug,
    get_usage_session,
    list_goals_for_chatbot,
    list_responses_for_student,
    upsert_student_check,
)
from qbot.app.db.dependencies import SessionDep
from qbot.app.exceptions import (
    ChatbotNotFoundError,
    InvalidRequestError,
    ResourceNotFoundError,
)
from qbot.app.middleware.auth import IdentityDep

router = APIRouter(tags=["student"])


class ChatbotPublic(BaseModel):
    id: str
    name: str
    description: Optional[str]
    max_attempts: Optional[int]


class SessionStartResponse(BaseModel):
    id: str
    student_id: str
    chatbot_id: str
    attempt_number: int
    created_at: datetime
    current_attempts: int
    max_attempts: Optional[int]


class MessageCreate(BaseModel):
    sender: Literal["student", "chatbot"]
    message: str = Field(..., min_length=1)
    image_url: Optional[str] = None


class MessageResponse(BaseModel):
    id: int
    session_id: str
    sender: str
    message: str
    image_url: Optional[str]
    created_at: datetime


class StudentGoal(BaseModel):
    id: str
    goal_text: str
    checked_by_student: Optional[bool] = None
    evaluated_by_ai: Optional[bool] = None
    evaluation_comment: Optional[str] = None
    evaluation_status: str = "none"


class GoalCheck(BaseModel):
    goal_id: str
    checked: bool


class GoalResponsesSubmit(BaseModel):
    chatbot_id: str
    responses: List[GoalCheck] = Field(..., min_length=1)

    @field_validator("responses")
    @classmethod
    def unique_goals(cls, v: List[GoalCheck]) -> List[GoalCheck]:
        if len({r.goal_id for r in v}) != len(v):
            raise ValueError("each goal may appear only once")
        return v


@router.get("/chatbots/by-slug/{slug}", response_model=ChatbotPublic)
async def get_public_chatbot(slug: str, session: SessionDep) -> ChatbotPublic:
    """Look up the public card of a chatbot by its share slug."""
    chatbot = await get_chatbot_by_slug(session, slug)
    if chatbot is None:
        raise ChatbotNotFoundError()
    return ChatbotPublic(
        id=chatbot.id,
        name=chatbot.name,
        description=chatbot.description,
        max_attempts=chatbot.max_attempts,
    )


@router.post(
    "/chatbots/{chatbot_id}/sessions",
    response_model=SessionStartResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_session(
    chatbot_id: str,
    identity: IdentityDep,
    gate: UsageGateDep,
) -> SessionStartResponse:
    """Start a chatbot session, consuming one attempt."""
    started = await gate.start_session(identity.id, chatbot_id)
    return SessionStartResponse(**started.to_response())


@router.post(
    "/sessions/{session_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def log_message(
    session_id: str,
    data: MessageCreate,
    identity: IdentityDep,
    session: SessionDep,
) -> MessageResponse:
    usage = await get_usage_session(session, session_id)
    if usage is None or usage.student_id != identity.id:
        raise ResourceNotFoundError("Session")

    row = await create_message(
        session,
        session_id=session_id,
        sender=data.sender,
        message=data.message,
        image_url=data.image_url,
    )
    return MessageResponse(
        id=row.id,
        session_id=row.session_id,
        sender=row.sender,
        message=row.message,
        image_url=row.image_url,
        created_at=row.created_at,
    )


@router.get("/chatbots/{chatbot_id}/goals", response_model=List[StudentGoal])
async def list_student_goals(
    chatbot_id: str,
    identity: IdentityDep,
    gate: UsageGateDep,
    session: SessionDep,
) -> List[StudentGoal]:
    """The chatbot's learning goals with the caller's own check and AI verdicts."""
    await gate.resolve_access(identity.id, chatbot_id)

    goals = await list_goals_for_chatbot(session, chatbot_id)
    responses = {
        r.goal_id: r
        for r in await list_responses_for_student(session, identity.id, chatbot_id)
    }

    result = []
    for goal in goals:
        response = responses.get(goal.id)
        result.append(StudentGoal(
            id=goal.id,
            goal_text=goal.goal_text,
            checked_by_student=response.checked_by_student if response else None,
            evaluated_by_ai=response.evaluated_by_ai if response else None,
            evaluation_comment=response.evaluation_comment if response else None,
            evaluation_status=response.evaluation_status if response else "none",
        ))
    return result


@router.post("/student-goal-responses")
async def submit_goal_responses(
    data: GoalResponsesSubmit,
    identity: IdentityDep,
    gate: UsageGateDep,
    session: SessionDep,
) -> dict:
    """Record the student's own achieved/not-achieved check for each goal."""
    await gate.resolve_access(identity.id, data.chatbot_id)

    goal_ids = {goal.id for goal in await list_goals_for_chatbot(session, data.chatbot_id)}
    unknown = [r.goal_id for r in data.responses if r.goal_id not in goal_ids]
    if unknown:
        raise InvalidRequestError(
            f"Goals do not belong to this chatbot: {', '.join(unknown)}"
        )

    for response in data.responses:
        await upsert_student_check(
            session,
            identity.id,
            data.chatbot_id,
            response.goal_id,
            response.checked,
            auto_commit=False,
        )
    return {"message": "Goal responses saved", "count": len(data.responses)}
