"""Teacher account provisioning."""

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError

from qbot.app.core.logging import get_log_context, get_logger
from qbot.app.core.security import generate_api_key, hash_api_key
from qbot.app.db.crud import create_teacher
from qbot.app.db.dependencies import SessionDep
from qbot.app.exceptions import ConflictError

router = APIRouter()
logger = get_logger(__name__)


class TeacherCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("invalid email")
        return v


class TeacherPublic(BaseModel):
    id: str
    name: str
    email: str
    created_at: datetime


class TeacherCreateResponse(BaseModel):
    teacher: TeacherPublic
    api_key: str


@router.post("", response_model=TeacherCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_teacher_account(
    data: TeacherCreate,
    session: SessionDep,
) -> TeacherCreateResponse:
    """Create a teacher and return its API key. The key is not retrievable later."""
    api_key = generate_api_key()
    try:
        teacher = await create_teacher(
            session, name=data.name, email=data.email, api_key_hash=hash_api_key(api_key)
        )
    except IntegrityError:
        raise ConflictError("Email already registered")

    logger.info("Teacher account created", extra=get_log_context(teacher_id=teacher.id))
    return TeacherCreateResponse(
        teacher=TeacherPublic(
            id=teacher.id,
            name=teacher.name,
            email=teacher.email,
            created_at=teacher.created_at,
        ),
        api_key=api_key,
    )
