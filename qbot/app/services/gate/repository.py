"""Storage access for the usage gate.

The gate never talks to the database directly; it is handed a
``UsageGateRepository``. ``SqlAlchemyUsageGateRepository`` is the production
implementation, ``InMemoryUsageGateRepository`` (see memory.py) backs tests.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.core.logging import get_log_context, get_logger
from qbot.app.db.models import Chatbot, Message, SchoolClass, Student, UsageSession
from qbot.app.exceptions import AttemptConflictError
from qbot.app.services.gate.models import (
    ChatbotConfig,
    StudentProfile,
    UsageSessionRecord,
)

logger = get_logger(__name__)


class UsageGateRepository(ABC):
    """Everything the gate and the reset path need from storage."""

    @abstractmethod
    async def find_student_profile(self, student_id: str) -> Optional[StudentProfile]:
        ...

    @abstractmethod
    async def find_chatbot_config(self, chatbot_id: str) -> Optional[ChatbotConfig]:
        ...

    @abstractmethod
    async def count_sessions(self, student_id: str, chatbot_id: str) -> int:
        ...

    @abstractmethod
    async def insert_session(
        self, student_id: str, chatbot_id: str, attempt_number: int
    ) -> UsageSessionRecord:
        """Insert and commit one usage session.

        The row is durable when this returns, so a concurrent start sees it.

        Raises:
            AttemptConflictError: If (student, chatbot, attempt_number) exists.
        """

    @abstractmethod
    async def delete_sessions(
        self,
        chatbot_id: str,
        teacher_id: str,
        student_ids: Optional[Sequence[str]] = None,
    ) -> int:
        """Delete usage sessions of a chatbot owned by ``teacher_id``.

        ``student_ids=None`` deletes every session of the chatbot; an empty
        sequence deletes nothing. Commits the deletion and returns the number of
        deleted rows.
        """


class SqlAlchemyUsageGateRepository(UsageGateRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_student_profile(self, student_id: str) -> Optional[StudentProfile]:
        result = await self.session.execute(
            select(
                Student.id,
                Student.teacher_id,
                Student.class_id,
                SchoolClass.name,
                SchoolClass.teacher_id,
            )
            .outerjoin(SchoolClass, SchoolClass.id == Student.class_id)
            .where(Student.id == student_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return StudentProfile(
            id=row[0],
            teacher_id=row[1],
            class_id=row[2],
            class_name=row[3],
            class_teacher_id=row[4],
        )

    async def find_chatbot_config(self, chatbot_id: str) -> Optional[ChatbotConfig]:
        result = await self.session.execute(
            select(
                Chatbot.id,
                Chatbot.teacher_id,
                Chatbot.allowed_classes,
                Chatbot.max_attempts,
            ).where(Chatbot.id == chatbot_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return ChatbotConfig.build(
            id=row[0],
            teacher_id=row[1],
            allowed_classes=row[2],
            max_attempts=row[3],
        )

    async def count_sessions(self, student_id: str, chatbot_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(UsageSession)
            .where(
                UsageSession.student_id == student_id,
                UsageSession.chatbot_id == chatbot_id,
            )
        )
        return int(result.scalar_one())

    async def insert_session(
        self, student_id: str, chatbot_id: str, attempt_number: int
    ) -> UsageSessionRecord:
        row = UsageSession(
            student_id=student_id,
            chatbot_id=chatbot_id,
            attempt_number=attempt_number,
        )
        self.session.add(row)
        try:
            await self.session.flush()
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info(
                f"Attempt {attempt_number} already claimed",
                extra=get_log_context(student_id=student_id, chatbot_id=chatbot_id),
            )
            raise AttemptConflictError()

        return UsageSessionRecord(
            id=row.id,
            student_id=row.student_id,
            chatbot_id=row.chatbot_id,
            attempt_number=row.attempt_number,
            created_at=row.created_at,
        )

    async def delete_sessions(
        self,
        chatbot_id: str,
        teacher_id: str,
        student_ids: Optional[Sequence[str]] = None,
    ) -> int:
        if student_ids is not None and len(student_ids) == 0:
            return 0

        owned_chatbots = select(Chatbot.id).where(Chatbot.teacher_id == teacher_id)
        conditions = [
            UsageSession.chatbot_id == chatbot_id,
            UsageSession.chatbot_id.in_(owned_chatbots),
        ]
        if student_ids is not None:
            conditions.append(UsageSession.student_id.in_(list(student_ids)))

        doomed = select(UsageSession.id).where(*conditions)
        await self.session.execute(
            delete(Message)
            .where(Message.session_id.in_(doomed))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            delete(UsageSession)
            .where(*conditions)
            .execution_options(synchronize_session=False)
        )
        deleted = int(result.rowcount or 0)
        await self.session.commit()
        return deleted
