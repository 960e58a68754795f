from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from qbot.app.db.base import Base


def _new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Teacher(Base):
    __tablename__ = "teachers"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String)
    email: Mapped[str] = mapped_column(String, unique=True)
    api_key_hash: Mapped[str] = mapped_column(String, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class SchoolClass(Base):
    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint("teacher_id", "name", name="uq_classes_teacher_name"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    teacher_id: Mapped[str] = mapped_column(
        ForeignKey("teachers.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (
        Index("idx_students_teacher", "teacher_id"),
        Index("idx_students_class", "class_id"),
        Index("idx_students_api_key", "api_key_hash"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(100))
    student_number: Mapped[str] = mapped_column(String(50), unique=True)
    password_salt: Mapped[str] = mapped_column(String(64))
    password_hash: Mapped[str] = mapped_column(String(128))
    class_id: Mapped[str | None] = mapped_column(
        ForeignKey("classes.id", ondelete="SET NULL"), nullable=True
    )
    # Set at login; None means no live bearer token.
    api_key_hash: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Chatbot(Base):
    __tablename__ = "chatbots"
    __table_args__ = (
        CheckConstraint(
            "max_attempts IS NULL OR max_attempts >= 0",
            name="ck_chatbots_max_attempts_non_negative",
        ),
        Index("idx_chatbots_teacher", "teacher_id"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    system_prompt: Mapped[str] = mapped_column(Text, default="")
    model: Mapped[str] = mapped_column(String(100), default="gpt-4o")
    slug: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    # Class ids or names; null/empty means the chatbot is open to every class.
    allowed_classes: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    # None = unlimited, 0 = no attempts permitted.
    max_attempts: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class UsageSession(Base):
    """One consumed attempt of a chatbot by a student.

    ``attempt_number`` runs 1..count for each (student, chatbot) pair. The
    unique constraint makes two concurrent starts that read the same count
    collide instead of both succeeding.
    """

    __tablename__ = "usage_sessions"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "chatbot_id", "attempt_number",
            name="uq_usage_sessions_attempt",
        ),
        CheckConstraint("attempt_number >= 1", name="ck_usage_sessions_attempt_positive"),
        Index("idx_usage_sessions_pair", "student_id", "chatbot_id"),
        Index("idx_usage_sessions_chatbot", "chatbot_id"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"))
    chatbot_id: Mapped[str] = mapped_column(ForeignKey("chatbots.id", ondelete="CASCADE"))
    attempt_number: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint("sender IN ('student', 'chatbot')", name="ck_messages_sender"),
        Index("idx_messages_session_created", "session_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("usage_sessions.id", ondelete="CASCADE")
    )
    sender: Mapped[str] = mapped_column(String(20))
    message: Mapped[str] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class LearningGoal(Base):
    __tablename__ = "learning_goals"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    chatbot_id: Mapped[str] = mapped_column(
        ForeignKey("chatbots.id", ondelete="CASCADE"), index=True
    )
    goal_text: Mapped[str] = mapped_column(Text)
    expected_keywords: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class StudentGoalResponse(Base):
    __tablename__ = "student_goal_responses"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "chatbot_id", "goal_id", name="uq_goal_responses_triple"
        ),
        CheckConstraint(
            "evaluation_status IN ('none', 'evaluated', 'pending')",
            name="ck_goal_responses_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"))
    chatbot_id: Mapped[str] = mapped_column(ForeignKey("chatbots.id", ondelete="CASCADE"))
    goal_id: Mapped[str] = mapped_column(ForeignKey("learning_goals.id", ondelete="CASCADE"))
    checked_by_student: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    evaluated_by_ai: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    evaluation_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    evaluation_status: Mapped[str] = mapped_column(String(20), default="none")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
