"""In-memory usage gate repository for tests and local tooling.

Every method yields to the event loop once, the way a network round trip
would, so concurrent gate calls interleave between count and insert exactly
like they do against a real database.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

from qbot.app.exceptions import AttemptConflictError
from qbot.app.services.gate.models import (
    ChatbotConfig,
    StudentProfile,
    UsageSessionRecord,
)
from qbot.app.services.gate.repository import UsageGateRepository


class InMemoryUsageGateRepository(UsageGateRepository):
    """Dict-backed repository.

    Args:
        enforce_unique: Reject a second session with the same
            (student, chatbot, attempt_number). Turning it off models a store
            without the unique constraint.
    """

    def __init__(self, enforce_unique: bool = True):
        self.enforce_unique = enforce_unique
        self.students: Dict[str, StudentProfile] = {}
        self.chatbots: Dict[str, ChatbotConfig] = {}
        self.sessions: List[UsageSessionRecord] = []
        self.insert_calls = 0

    def add_student(self, profile: StudentProfile) -> StudentProfile:
        self.students[profile.id] = profile
        return profile

    def add_chatbot(self, config: ChatbotConfig) -> ChatbotConfig:
        self.chatbots[config.id] = config
        return config

    def sessions_for(self, student_id: str, chatbot_id: str) -> List[UsageSessionRecord]:
        return [
            s for s in self.sessions
            if s.student_id == student_id and s.chatbot_id == chatbot_id
        ]

    async def find_student_profile(self, student_id: str) -> Optional[StudentProfile]:
        await asyncio.sleep(0)
        return self.students.get(student_id)

    async def find_chatbot_config(self, chatbot_id: str) -> Optional[ChatbotConfig]:
        await asyncio.sleep(0)
        return self.chatbots.get(chatbot_id)

    async def count_sessions(self, student_id: str, chatbot_id: str) -> int:
        count = len(self.sessions_for(student_id, chatbot_id))
        await asyncio.sleep(0)
        return count

    async def insert_session(
        self, student_id: str, chatbot_id: str, attempt_number: int
    ) -> UsageSessionRecord:
        await asyncio.sleep(0)
        self.insert_calls += 1
        if self.enforce_unique and any(
            s.attempt_number == attempt_number
            for s in self.sessions_for(student_id, chatbot_id)
        ):
            raise AttemptConflictError()

        record = UsageSessionRecord(
            id=str(uuid4()),
            student_id=student_id,
            chatbot_id=chatbot_id,
            attempt_number=attempt_number,
            created_at=datetime.now(timezone.utc),
        )
        self.sessions.append(record)
        return record

    async def delete_sessions(
        self,
        chatbot_id: str,
        teacher_id: str,
        student_ids: Optional[Sequence[str]] = None,
    ) -> int:
        await asyncio.sleep(0)
        config = self.chatbots.get(chatbot_id)
        if config is None or config.teacher_id != teacher_id:
            return 0
        if student_ids is not None and len(student_ids) == 0:
            return 0

        targets = set(student_ids) if student_ids is not None else None
        kept = []
        deleted = 0
        for s in self.sessions:
            if s.chatbot_id == chatbot_id and (targets is None or s.student_id in targets):
                deleted += 1
            else:
                kept.append(s)
        self.sessions = kept
        return deleted
