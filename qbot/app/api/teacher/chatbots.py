"""Chatbot management for the signed-in teacher."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from qbot.app.core.config import settings
from qbot.app.core.logging import get_log_context, get_logger
from qbot.app.db.crud import (
    create_chatbot,
    delete_chatbot,
    list_chatbots_for_teacher,
    update_chatbot,
)
from qbot.app.db.dependencies import SessionDep
from qbot.app.db.models import Chatbot
from qbot.app.exceptions import ConflictError, DatabaseError
from qbot.app.middleware.auth import TeacherDep
from qbot.app.services.ownership import assert_owns_chatbot

router = APIRouter()
logger = get_logger(__name__)

SLUG_PATTERN = r"^[a-z0-9-]+$"


def _clean_allowed_classes(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    cleaned = []
    for item in v:
        item = item.strip()
        if item and item not in cleaned:
            cleaned.append(item)
    return cleaned


class ChatbotCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    system_prompt: str = ""
    model: str = Field(default_factory=lambda: settings.default_chat_model, min_length=1)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    allowed_classes: List[str] = Field(default_factory=list)
    max_attempts: Optional[int] = Field(None, ge=0)

    @field_validator("allowed_classes")
    @classmethod
    def normalize_allowed_classes(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_allowed_classes(v)


class ChatbotUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    system_prompt: Optional[str] = None
    model: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    allowed_classes: Optional[List[str]] = None
    max_attempts: Optional[int] = Field(None, ge=0)

    @field_validator("allowed_classes")
    @classmethod
    def normalize_allowed_classes(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_allowed_classes(v)


class ChatbotResponse(BaseModel):
    id: str
    name: str
    description: Optional[str]
    system_prompt: str
    model: str
    slug: Optional[str]
    allowed_classes: List[str]
    max_attempts: Optional[int]
    created_at: datetime
    updated_at: datetime


def _to_response(chatbot: Chatbot) -> ChatbotResponse:
    return ChatbotResponse(
        id=chatbot.id,
        name=chatbot.name,
        description=chatbot.description,
        system_prompt=chatbot.system_prompt,
        model=chatbot.model,
        slug=chatbot.slug,
        allowed_classes=list(chatbot.allowed_classes or []),
        max_attempts=chatbot.max_attempts,
        created_at=chatbot.created_at,
        updated_at=chatbot.updated_at,
    )


@router.get("", response_model=List[ChatbotResponse])
async def list_teacher_chatbots(teacher: TeacherDep, session: SessionDep) -> List[ChatbotResponse]:
    try:
        chatbots = await list_chatbots_for_teacher(session, teacher.id)
    except SQLAlchemyError as e:
        logger.error(f"Database error listing chatbots: {e}")
        raise DatabaseError("Database error occurred while listing chatbots")
    return [_to_response(c) for c in chatbots]


@router.post("", response_model=ChatbotResponse, status_code=status.HTTP_201_CREATED)
async def create_teacher_chatbot(
    data: ChatbotCreate,
    teacher: TeacherDep,
    session: SessionDep,
) -> ChatbotResponse:
    try:
        chatbot = await create_chatbot(session, teacher.id, data.model_dump())
    except IntegrityError:
        raise ConflictError(f"Slug '{data.slug}' is already in use")
    logger.info(
        "Chatbot created",
        extra=get_log_context(teacher_id=teacher.id, chatbot_id=chatbot.id),
    )
    return _to_response(chatbot)


@router.get("/{chatbot_id}", response_model=ChatbotResponse)
async def get_teacher_chatbot(
    chatbot_id: str,
    teacher: TeacherDep,
    session: SessionDep,
) -> ChatbotResponse:
    chatbot = await assert_owns_chatbot(session, teacher.id, chatbot_id)
    return _to_response(chatbot)


@router.put("/{chatbot_id}", response_model=ChatbotResponse)
async def update_teacher_chatbot(
    chatbot_id: str,
    data: ChatbotUpdate,
    teacher: TeacherDep,
    session: SessionDep,
) -> ChatbotResponse:
    """Update the fields present in the body. ``max_attempts: null`` lifts the limit."""
    chatbot = await assert_owns_chatbot(session, teacher.id, chatbot_id)

    fields = data.model_dump(exclude_unset=True)
    # Only max_attempts, description and slug may be cleared with null
    fields = {
        key: value for key, value in fields.items()
        if value is not None or key in ("max_attempts", "description", "slug")
    }
    try:
        chatbot = await update_chatbot(session, chatbot, fields)
    except IntegrityError:
        raise ConflictError(f"Slug '{data.slug}' is already in use")
    return _to_response(chatbot)


@router.delete("/{chatbot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_teacher_chatbot(
    chatbot_id: str,
    teacher: TeacherDep,
    session: SessionDep,
) -> Response:
    chatbot = await assert_owns_chatbot(session, teacher.id, chatbot_id)
    await delete_chatbot(session, chatbot)
    logger.info(
        "Chatbot deleted",
        extra=get_log_context(teacher_id=teacher.id, chatbot_id=chatbot_id),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
