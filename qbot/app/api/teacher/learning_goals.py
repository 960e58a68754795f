"""Learning goal management.

Goals are listed and created under their chatbot; single goals are edited
through /teacher/learning-goals/{goal_id}.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field, field_validator

from qbot.app.db.crud import (
    create_goal,
    delete_goal,
    get_goal_for_teacher,
    list_goals_for_chatbot,
    update_goal,
)
from qbot.app.db.dependencies import SessionDep
from qbot.app.db.models import LearningGoal
from qbot.app.exceptions import ResourceNotFoundError
from qbot.app.middleware.auth import TeacherDep
from qbot.app.services.ownership import assert_owns_chatbot

router = APIRouter()


def _clean_keywords(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    return [k.strip() for k in v if k and k.strip()]


class GoalCreate(BaseModel):
    goal_text: str = Field(..., min_length=1)
    expected_keywords: Optional[List[str]] = None

    @field_validator("expected_keywords")
    @classmethod
    def normalize_keywords(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_keywords(v)


class GoalUpdate(BaseModel):
    goal_text: Optional[str] = Field(None, min_length=1)
    expected_keywords: Optional[List[str]] = None

    @field_validator("expected_keywords")
    @classmethod
    def normalize_keywords(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_keywords(v)


class GoalResponse(BaseModel):
    id: str
    chatbot_id: str
    goal_text: str
    expected_keywords: Optional[List[str]]
    created_at: datetime
    updated_at: datetime


def _to_response(goal: LearningGoal) -> GoalResponse:
    return GoalResponse(
        id=goal.id,
        chatbot_id=goal.chatbot_id,
        goal_text=goal.goal_text,
        expected_keywords=goal.expected_keywords,
        created_at=goal.created_at,
        updated_at=goal.updated_at,
    )


@router.get("/chatbots/{chatbot_id}/goals", response_model=List[GoalResponse])
async def list_chatbot_goals(
    chatbot_id: str,
    teacher: TeacherDep,
    session: SessionDep,
) -> List[GoalResponse]:
    await assert_owns_chatbot(session, teacher.id, chatbot_id)
    return [_to_response(g) for g in await list_goals_for_chatbot(session, chatbot_id)]


@router.post(
    "/chatbots/{chatbot_id}/goals",
    response_model=GoalResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_chatbot_goal(
    chatbot_id: str,
    data: GoalCreate,
    teacher: TeacherDep,
    session: SessionDep,
) -> GoalResponse:
    await assert_owns_chatbot(session, teacher.id, chatbot_id)
    goal = await create_goal(
        session, chatbot_id, data.goal_text, expected_keywords=data.expected_keywords
    )
    return _to_response(goal)


@router.put("/learning-goals/{goal_id}", response_model=GoalResponse)
async def edit_goal(
    goal_id: str,
    data: GoalUpdate,
    teacher: TeacherDep,
    session: SessionDep,
) -> GoalResponse:
    goal = await get_goal_for_teacher(session, goal_id, teacher.id)
    if goal is None:
        raise ResourceNotFoundError("Learning goal")
    goal = await update_goal(
        session, goal, goal_text=data.goal_text, expected_keywords=data.expected_keywords
    )
    return _to_response(goal)


@router.delete("/learning-goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_goal(
    goal_id: str,
    teacher: TeacherDep,
    session: SessionDep,
) -> Response:
    goal = await get_goal_for_teacher(session, goal_id, teacher.id)
    if goal is None:
        raise ResourceNotFoundError("Learning goal")
    await delete_goal(session, goal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
