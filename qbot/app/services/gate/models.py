"""Value types used by the usage gate.

These are plain frozen dataclasses rather than ORM rows so they stay valid
after the database session that produced them has been rolled back.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional


class LimitKind(str, Enum):
    UNLIMITED = "unlimited"
    ZERO = "zero"
    LIMITED = "limited"


@dataclass(frozen=True)
class AttemptLimit:
    """How many sessions a student may start on one chatbot.

    Stored as a nullable integer column: NULL is unlimited, 0 permits nothing,
    any positive n permits n sessions.
    """

    kind: LimitKind
    maximum: int = 0

    @classmethod
    def unlimited(cls) -> "AttemptLimit":
        return cls(LimitKind.UNLIMITED)

    @classmethod
    def zero(cls) -> "AttemptLimit":
        return cls(LimitKind.ZERO)

    @classmethod
    def limited(cls, maximum: int) -> "AttemptLimit":
        if maximum <= 0:
            raise ValueError("limited attempts must be positive; use zero()")
        return cls(LimitKind.LIMITED, maximum)

    @classmethod
    def from_column(cls, value: Optional[int]) -> "AttemptLimit":
        if value is None:
            return cls.unlimited()
        if value < 0:
            raise ValueError(f"max_attempts must be >= 0, got {value}")
        if value == 0:
            return cls.zero()
        return cls.limited(value)

    def as_column(self) -> Optional[int]:
        if self.kind is LimitKind.UNLIMITED:
            return None
        if self.kind is LimitKind.ZERO:
            return 0
        return self.maximum

    def allows(self, used: int) -> bool:
        """True when one more session may start after ``used`` sessions."""
        if self.kind is LimitKind.UNLIMITED:
            return True
        if self.kind is LimitKind.ZERO:
            return False
        return used < self.maximum


@dataclass(frozen=True)
class StudentProfile:
    id: str
    teacher_id: str
    class_id: Optional[str] = None
    class_name: Optional[str] = None
    class_teacher_id: Optional[str] = None


@dataclass(frozen=True)
class ChatbotConfig:
    id: str
    teacher_id: str
    allowed_classes: frozenset = field(default_factory=frozenset)
    limit: AttemptLimit = field(default_factory=AttemptLimit.unlimited)

    @classmethod
    def build(
        cls,
        id: str,
        teacher_id: str,
        allowed_classes: Optional[Iterable[str]] = None,
        max_attempts: Optional[int] = None,
    ) -> "ChatbotConfig":
        """Build from raw column values; a NULL allowlist becomes an empty set."""
        return cls(
            id=id,
            teacher_id=teacher_id,
            allowed_classes=frozenset(str(c) for c in (allowed_classes or ()) if c),
            limit=AttemptLimit.from_column(max_attempts),
        )

    @property
    def is_open(self) -> bool:
        return not self.allowed_classes


@dataclass(frozen=True)
class UsageSessionRecord:
    id: str
    student_id: str
    chatbot_id: str
    attempt_number: int
    created_at: datetime


@dataclass(frozen=True)
class StartedSession:
    """Result of an allowed session start."""

    session: UsageSessionRecord
    current_attempts: int
    max_attempts: Optional[int]

    def to_response(self) -> dict:
        return {
            "id": self.session.id,
            "student_id": self.session.student_id,
            "chatbot_id": self.session.chatbot_id,
            "attempt_number": self.session.attempt_number,
            "created_at": self.session.created_at,
            "current_attempts": self.current_attempts,
            "max_attempts": self.max_attempts,
        }
