"""Student roster management for the signed-in teacher."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from qbot.app.core.logging import get_log_context, get_logger
from qbot.app.core.security import generate_password, hash_password
from qbot.app.db.crud import (
    create_student,
    delete_student,
    get_class_for_teacher,
    get_student_for_teacher,
    list_students_for_teacher,
)
from qbot.app.db.dependencies import SessionDep
from qbot.app.exceptions import (
    ConflictError,
    DatabaseError,
    InvalidRequestError,
    ResourceNotFoundError,
)
from qbot.app.middleware.auth import TeacherDep

router = APIRouter()
logger = get_logger(__name__)


class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    student_number: str = Field(..., min_length=1, max_length=50)
    password: Optional[str] = Field(None, min_length=4, max_length=256)
    class_id: Optional[str] = None

    @field_validator("name", "student_number")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("value cannot be empty")
        return v


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    class_id: Optional[str] = None
    password: Optional[str] = Field(None, min_length=4, max_length=256)


class StudentResponse(BaseModel):
    id: str
    name: str
    student_number: str
    class_id: Optional[str]
    class_name: Optional[str]
    created_at: datetime


class StudentCreateResponse(StudentResponse):
    # Only set when the password was generated server-side
    initial_password: Optional[str] = None


async def _require_class(session, class_id: Optional[str], teacher_id: str):
    if class_id is None:
        return None
    school_class = await get_class_for_teacher(session, class_id, teacher_id)
    if school_class is None:
        raise InvalidRequestError("class_id does not refer to one of your classes")
    return school_class


@router.get("", response_model=List[StudentResponse])
async def list_teacher_students(
    teacher: TeacherDep,
    session: SessionDep,
    class_id: Optional[str] = None,
) -> List[StudentResponse]:
    try:
        rows = await list_students_for_teacher(session, teacher.id, class_id=class_id)
    except SQLAlchemyError as e:
        logger.error(f"Database error listing students: {e}")
        raise DatabaseError("Database error occurred while listing students")
    return [
        StudentResponse(
            id=student.id,
            name=student.name,
            student_number=student.student_number,
            class_id=student.class_id,
            class_name=class_name,
            created_at=student.created_at,
        )
        for student, class_name in rows
    ]


@router.post("", response_model=StudentCreateResponse, status_code=status.HTTP_201_CREATED)
async def enroll_student(
    data: StudentCreate,
    teacher: TeacherDep,
    session: SessionDep,
) -> StudentCreateResponse:
    school_class = await _require_class(session, data.class_id, teacher.id)

    generated = None
    password = data.password
    if password is None:
        password = generated = generate_password()
    salt, hashed = hash_password(password)

    try:
        student = await create_student(
            session,
            teacher_id=teacher.id,
            name=data.name,
            student_number=data.student_number,
            password_salt=salt,
            password_hash=hashed,
            class_id=data.class_id,
        )
    except IntegrityError:
        raise ConflictError(f"Student number '{data.student_number}' is already registered")

    logger.info(
        "Student enrolled",
        extra=get_log_context(teacher_id=teacher.id, student_id=student.id),
    )
    return StudentCreateResponse(
        id=student.id,
        name=student.name,
        student_number=student.student_number,
        class_id=student.class_id,
        class_name=school_class.name if school_class else None,
        created_at=student.created_at,
        initial_password=generated,
    )


@router.patch("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: str,
    data: StudentUpdate,
    teacher: TeacherDep,
    session: SessionDep,
) -> StudentResponse:
    student = await get_student_for_teacher(session, student_id, teacher.id)
    if student is None:
        raise ResourceNotFoundError("Student")

    fields = data.model_fields_set
    if "name" in fields and data.name is not None:
        student.name = data.name.strip()
    if "class_id" in fields:
        await _require_class(session, data.class_id, teacher.id)
        student.class_id = data.class_id
    if "password" in fields and data.password is not None:
        student.password_salt, student.password_hash = hash_password(data.password)
        # Existing logins end with a password change
        student.api_key_hash = None

    await session.flush()
    await session.commit()

    school_class = await _require_class(session, student.class_id, teacher.id)
    return StudentResponse(
        id=student.id,
        name=student.name,
        student_number=student.student_number,
        class_id=student.class_id,
        class_name=school_class.name if school_class else None,
        created_at=student.created_at,
    )


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_student(
    student_id: str,
    teacher: TeacherDep,
    session: SessionDep,
) -> Response:
    student = await get_student_for_teacher(session, student_id, teacher.id)
    if student is None:
        raise ResourceNotFoundError("Student")
    await delete_student(session, student)
    logger.info(
        "Student deleted",
        extra=get_log_context(teacher_id=teacher.id, student_id=student_id),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
