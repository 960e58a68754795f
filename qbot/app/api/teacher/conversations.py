"""Read-only views of student conversations."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from qbot.app.db.crud import (
    get_usage_session,
    list_messages_for_session,
    list_sessions_for_chatbot,
)
from qbot.app.db.dependencies import SessionDep
from qbot.app.exceptions import ResourceNotFoundError
from qbot.app.middleware.auth import TeacherDep
from qbot.app.services.ownership import assert_owns_chatbot

router = APIRouter()


class SessionSummary(BaseModel):
    id: str
    student_id: str
    student_name: str
    student_number: str
    attempt_number: int
    created_at: datetime


class TranscriptMessage(BaseModel):
    id: int
    sender: str
    message: str
    image_url: Optional[str]
    created_at: datetime


@router.get("/chatbots/{chatbot_id}/sessions", response_model=List[SessionSummary])
async def list_chatbot_sessions(
    chatbot_id: str,
    teacher: TeacherDep,
    session: SessionDep,
) -> List[SessionSummary]:
    await assert_owns_chatbot(session, teacher.id, chatbot_id)
    rows = await list_sessions_for_chatbot(session, chatbot_id)
    return [
        SessionSummary(
            id=usage.id,
            student_id=usage.student_id,
            student_name=name,
            student_number=number,
            attempt_number=usage.attempt_number,
            created_at=usage.created_at,
        )
        for usage, name, number in rows
    ]


@router.get("/sessions/{session_id}/messages", response_model=List[TranscriptMessage])
async def get_session_messages(
    session_id: str,
    teacher: TeacherDep,
    session: SessionDep,
) -> List[TranscriptMessage]:
    usage = await get_usage_session(session, session_id)
    if usage is None:
        raise ResourceNotFoundError("Session")
    await assert_owns_chatbot(session, teacher.id, usage.chatbot_id)
    return [
        TranscriptMessage(
            id=m.id,
            sender=m.sender,
            message=m.message,
            image_url=m.image_url,
            created_at=m.created_at,
        )
        for m in await list_messages_for_session(session, session_id)
    ]
