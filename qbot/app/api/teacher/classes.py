"""Class management for the signed-in teacher."""

from datetime import datetime
from typing import List

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from qbot.app.core.logging import get_logger
from qbot.app.db.crud import (
    create_class,
    delete_class,
    get_class_for_teacher,
    list_classes,
    rename_class,
)
from qbot.app.db.dependencies import SessionDep
from qbot.app.exceptions import ConflictError, DatabaseError, ResourceNotFoundError
from qbot.app.middleware.auth import TeacherDep

router = APIRouter()
logger = get_logger(__name__)


class ClassWrite(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ClassResponse(BaseModel):
    id: str
    name: str
    created_at: datetime


def _to_response(school_class) -> ClassResponse:
    return ClassResponse(
        id=school_class.id, name=school_class.name, created_at=school_class.created_at
    )


@router.get("", response_model=List[ClassResponse])
async def list_teacher_classes(teacher: TeacherDep, session: SessionDep) -> List[ClassResponse]:
    try:
        classes = await list_classes(session, teacher.id)
    except SQLAlchemyError as e:
        logger.error(f"Database error listing classes: {e}")
        raise DatabaseError("Database error occurred while listing classes")
    return [_to_response(c) for c in classes]


@router.post("", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
async def create_teacher_class(
    data: ClassWrite,
    teacher: TeacherDep,
    session: SessionDep,
) -> ClassResponse:
    try:
        school_class = await create_class(session, teacher.id, data.name)
    except IntegrityError:
        raise ConflictError(f"Class '{data.name}' already exists")
    return _to_response(school_class)


@router.put("/{class_id}", response_model=ClassResponse)
async def rename_teacher_class(
    class_id: str,
    data: ClassWrite,
    teacher: TeacherDep,
    session: SessionDep,
) -> ClassResponse:
    school_class = await get_class_for_teacher(session, class_id, teacher.id)
    if school_class is None:
        raise ResourceNotFoundError("Class")
    try:
        school_class = await rename_class(session, school_class, data.name)
    except IntegrityError:
        raise ConflictError(f"Class '{data.name}' already exists")
    return _to_response(school_class)


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_teacher_class(
    class_id: str,
    teacher: TeacherDep,
    session: SessionDep,
) -> Response:
    school_class = await get_class_for_teacher(session, class_id, teacher.id)
    if school_class is None:
        raise ResourceNotFoundError("Class")
    await delete_class(session, school_class)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
