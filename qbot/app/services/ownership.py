"""Chatbot ownership check shared by every teacher-side mutation."""

from sqlalchemy.ext.asyncio import AsyncSession

from qbot.app.core.logging import get_log_context, get_logger
from qbot.app.db.crud import get_chatbot_by_id
from qbot.app.db.models import Chatbot
from qbot.app.exceptions import ChatbotNotFoundError, NotChatbotOwnerError

logger = get_logger(__name__)


async def assert_owns_chatbot(
    session: AsyncSession,
    teacher_id: str,
    chatbot_id: str
) -> Chatbot:
    """Return the chatbot if ``teacher_id`` owns it.

    Raises:
        ChatbotNotFoundError: No chatbot with this id (404)
        NotChatbotOwnerError: The chatbot belongs to another teacher (403)
    """
    chatbot = await get_chatbot_by_id(session, chatbot_id)
    if chatbot is None:
        raise ChatbotNotFoundError(chatbot_id)
    if chatbot.teacher_id != teacher_id:
        logger.warning(
            "Chatbot ownership check failed",
            extra=get_log_context(teacher_id=teacher_id, chatbot_id=chatbot_id),
        )
        raise NotChatbotOwnerError(chatbot_id)
    return chatbot
