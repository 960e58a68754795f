"""Usage gate: decides whether a student may start a chatbot session.

Order of checks:
1. student profile exists
2. chatbot exists
3. class allowlist (skipped when the allowlist is empty)
4. attempt limit

On success exactly one usage session is recorded; a denied call writes
nothing.
"""

from typing import Optional, Tuple

from qbot.app.core.config import settings
from qbot.app.core.logging import get_log_context, get_logger
from qbot.app.exceptions import (
    AttemptConflictError,
    ChatbotNotFoundError,
    ClassInfoMissingError,
    ClassNotAllowedError,
    ProfileNotFoundError,
    QbotException,
    QuotaExceededError,
)
from qbot.app.services.gate.models import (
    ChatbotConfig,
    LimitKind,
    StartedSession,
    StudentProfile,
)
from qbot.app.services.gate.repository import UsageGateRepository

logger = get_logger(__name__)


def is_class_allowed(profile: StudentProfile, config: ChatbotConfig) -> bool:
    """Whether the student's class is on the chatbot's allowlist.

    An entry matches the class id, or the class name when that class belongs
    to the teacher who owns the chatbot. An empty allowlist admits everyone.
    """
    if config.is_open:
        return True
    if profile.class_id is None:
        return False
    if profile.class_id in config.allowed_classes:
        return True
    return (
        profile.class_name is not None
        and profile.class_teacher_id == config.teacher_id
        and profile.class_name in config.allowed_classes
    )


def check_class_access(profile: StudentProfile, config: ChatbotConfig) -> None:
    """Raise if the student may not use this chatbot because of its class."""
    if config.is_open:
        return
    if profile.class_id is None:
        raise ClassInfoMissingError()
    if not is_class_allowed(profile, config):
        raise ClassNotAllowedError(profile.class_id)


class UsageGate:
    """Access and attempt-limit gate over an injected repository.

    Args:
        repository: Storage used for profile, chatbot and session access
        conflict_retries: How many times to recount after losing an
            attempt-number race before giving up with AttemptConflictError.
            Unlimited chatbots retry until the insert succeeds.
    """

    def __init__(
        self,
        repository: UsageGateRepository,
        conflict_retries: Optional[int] = None,
    ):
        self.repository = repository
        self.conflict_retries = (
            settings.gate_conflict_retries if conflict_retries is None else conflict_retries
        )

    async def resolve_access(
        self, student_id: str, chatbot_id: str
    ) -> Tuple[StudentProfile, ChatbotConfig]:
        """Run the profile, chatbot and class checks without touching the quota."""
        try:
            profile = await self.repository.find_student_profile(student_id)
            if profile is None:
                raise ProfileNotFoundError(student_id)

            config = await self.repository.find_chatbot_config(chatbot_id)
            if config is None:
                raise ChatbotNotFoundError(chatbot_id)

            check_class_access(profile, config)
        except QbotException as e:
            self._log_deny(student_id, chatbot_id, e)
            raise
        return profile, config

    async def start_session(self, student_id: str, chatbot_id: str) -> StartedSession:
        """Admit the student and record one usage session, or raise the deny reason.

        Raises:
            ProfileNotFoundError, ChatbotNotFoundError, ClassInfoMissingError,
            ClassNotAllowedError, QuotaExceededError, AttemptConflictError
        """
        _, config = await self.resolve_access(student_id, chatbot_id)
        limit = config.limit

        # Every lost race means another start won, so unlimited retries terminate
        bounded = limit.kind is not LimitKind.UNLIMITED
        lost = 0
        while not bounded or lost <= self.conflict_retries:
            used = await self.repository.count_sessions(student_id, chatbot_id)
            if not limit.allows(used):
                error = QuotaExceededError(used, limit.as_column())
                self._log_deny(student_id, chatbot_id, error)
                raise error

            try:
                record = await self.repository.insert_session(
                    student_id, chatbot_id, used + 1
                )
            except AttemptConflictError:
                lost += 1
                logger.info(
                    f"Attempt number race lost ({lost})",
                    extra=get_log_context(student_id=student_id, chatbot_id=chatbot_id),
                )
                continue

            logger.info(
                f"Usage session started (attempt {record.attempt_number})",
                extra=get_log_context(student_id=student_id, chatbot_id=chatbot_id),
            )
            return StartedSession(
                session=record,
                current_attempts=record.attempt_number,
                max_attempts=limit.as_column(),
            )

        error = AttemptConflictError()
        self._log_deny(student_id, chatbot_id, error)
        raise error

    def _log_deny(self, student_id: str, chatbot_id: str, error: QbotException) -> None:
        logger.warning(
            f"Usage gate denied: {error.message}",
            extra=get_log_context(
                student_id=student_id,
                chatbot_id=chatbot_id,
                reason=error.error_code,
            ),
        )
