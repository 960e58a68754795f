"""Administrative reset of usage sessions."""

from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.core.logging import get_log_context, get_logger
from qbot.app.db.crud import list_student_ids_in_class
from qbot.app.exceptions import InvalidRequestError
from qbot.app.services.gate import SqlAlchemyUsageGateRepository, UsageGateRepository
from qbot.app.services.ownership import assert_owns_chatbot

logger = get_logger(__name__)


class ResetScope(str, Enum):
    STUDENT = "student"
    CLASS = "class"
    CHATBOT = "chatbot"


async def reset_attempts(
    session: AsyncSession,
    teacher_id: str,
    chatbot_id: str,
    scope: ResetScope,
    student_id: Optional[str] = None,
    class_name: Optional[str] = None,
    repository: Optional[UsageGateRepository] = None,
) -> int:
    """Delete usage sessions of one chatbot and return how many were removed.

    - ``student``: sessions of one student (``student_id`` required)
    - ``class``: sessions of the teacher's students in ``class_name``
    - ``chatbot``: every session of the chatbot

    Raises:
        InvalidRequestError: The field the scope needs is missing
        ChatbotNotFoundError, NotChatbotOwnerError: from the ownership check
    """
    if scope is ResetScope.STUDENT and not student_id:
        raise InvalidRequestError("studentId is required for scope 'student'")
    if scope is ResetScope.CLASS and not class_name:
        raise InvalidRequestError("className is required for scope 'class'")

    await assert_owns_chatbot(session, teacher_id, chatbot_id)
    repo = repository or SqlAlchemyUsageGateRepository(session)

    if scope is ResetScope.STUDENT:
        student_ids = [student_id]
    elif scope is ResetScope.CLASS:
        student_ids = await list_student_ids_in_class(session, teacher_id, class_name)
    else:
        student_ids = None

    deleted = await repo.delete_sessions(chatbot_id, teacher_id, student_ids)
    logger.info(
        f"Reset attempts scope={scope.value} deleted={deleted}",
        extra=get_log_context(
            teacher_id=teacher_id,
            chatbot_id=chatbot_id,
            student_id=student_id,
            class_name=class_name,
        ),
    )
    return deleted
