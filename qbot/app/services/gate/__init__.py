"""Session access and attempt-limit gate.

- models.py: AttemptLimit and the gate's value types
- repository.py: UsageGateRepository and its SQLAlchemy implementation
- memory.py: in-memory repository
- service.py: UsageGate
"""

from qbot.app.services.gate.memory import InMemoryUsageGateRepository
from qbot.app.services.gate.models import (
    AttemptLimit,
    ChatbotConfig,
    LimitKind,
    StartedSession,
    StudentProfile,
    UsageSessionRecord,
)
from qbot.app.services.gate.repository import (
    SqlAlchemyUsageGateRepository,
    UsageGateRepository,
)
from qbot.app.services.gate.service import (
    UsageGate,
    check_class_access,
    is_class_allowed,
)

__all__ = [
    "AttemptLimit",
    "ChatbotConfig",
    "InMemoryUsageGateRepository",
    "LimitKind",
    "SqlAlchemyUsageGateRepository",
    "StartedSession",
    "StudentProfile",
    "UsageGate",
    "UsageGateRepository",
    "UsageSessionRecord",
    "check_class_access",
    "is_class_allowed",
]
