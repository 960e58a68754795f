"""Student login.

A successful login issues a fresh bearer token and stores only its hash;
any token from an earlier login stops working.
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator

from qbot.app.core.logging import get_log_context, get_logger
from qbot.app.core.security import generate_api_key, hash_api_key, verify_password
from qbot.app.db.crud import get_class_for_teacher, get_student_by_number, set_student_token
from qbot.app.db.dependencies import SessionDep
from qbot.app.exceptions import AuthenticationError

router = APIRouter(prefix="/student", tags=["student"])
logger = get_logger(__name__)

# Same message for unknown number and wrong password
_LOGIN_FAILED = "Invalid student number or password"


class StudentLoginRequest(BaseModel):
    student_number: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=256)

    @field_validator("student_number")
    @classmethod
    def normalize_student_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("student_number cannot be empty")
        return v


class StudentSummary(BaseModel):
    id: str
    name: str
    student_number: str
    class_id: Optional[str]
    class_name: Optional[str]


class StudentLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    student: StudentSummary


@router.post("/login", response_model=StudentLoginResponse)
async def login(data: StudentLoginRequest, session: SessionDep) -> StudentLoginResponse:
    student = await get_student_by_number(session, data.student_number)
    if student is None or not verify_password(
        data.password, student.password_salt, student.password_hash
    ):
        logger.warning(f"Login failed for student number {data.student_number}")
        raise AuthenticationError(_LOGIN_FAILED)

    token = generate_api_key()
    await set_student_token(session, student, hash_api_key(token))

    class_name = None
    if student.class_id is not None:
        school_class = await get_class_for_teacher(session, student.class_id, student.teacher_id)
        class_name = school_class.name if school_class else None

    logger.info("Student logged in", extra=get_log_context(student_id=student.id))
    return StudentLoginResponse(
        access_token=token,
        student=StudentSummary(
            id=student.id,
            name=student.name,
            student_number=student.student_number,
            class_id=student.class_id,
            class_name=class_name,
        ),
    )
