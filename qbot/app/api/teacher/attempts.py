"""Usage-session reset for a chatbot."""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from qbot.app.db.dependencies import SessionDep
from qbot.app.middleware.auth import TeacherDep
from qbot.app.services.attempts import ResetScope, reset_attempts

router = APIRouter()


class ManageAttemptsRequest(BaseModel):
    """Accepts camelCase (studentId, className) or snake_case field names."""

    model_config = ConfigDict(populate_by_name=True)

    scope: ResetScope
    student_id: Optional[str] = Field(None, alias="studentId")
    class_name: Optional[str] = Field(None, alias="className")


class ManageAttemptsResponse(BaseModel):
    message: str
    scope: ResetScope
    deleted_count: int


@router.post("/chatbots/{chatbot_id}/manage-attempts", response_model=ManageAttemptsResponse)
async def manage_attempts(
    chatbot_id: str,
    data: ManageAttemptsRequest,
    teacher: TeacherDep,
    session: SessionDep,
) -> ManageAttemptsResponse:
    """Reset attempts for one student, one class, or everyone on the chatbot."""
    deleted = await reset_attempts(
        session,
        teacher_id=teacher.id,
        chatbot_id=chatbot_id,
        scope=data.scope,
        student_id=data.student_id,
        class_name=data.class_name.strip() if data.class_name else None,
    )
    return ManageAttemptsResponse(
        message=f"Reset {deleted} session(s)",
        scope=data.scope,
        deleted_count=deleted,
    )
