"""Tests for the usage gate decision logic against the in-memory repository."""

import pytest

from qbot.app.exceptions import (
    ChatbotNotFoundError,
    ClassInfoMissingError,
    ClassNotAllowedError,
    ProfileNotFoundError,
    QuotaExceededError,
)
from qbot.app.services.gate import (
    ChatbotConfig,
    InMemoryUsageGateRepository,
    StudentProfile,
    UsageGate,
    is_class_allowed,
)

TEACHER = "teacher-1"


def _repo(max_attempts=None, allowed_classes=None, class_id=None, class_name=None,
          class_teacher_id=TEACHER):
    repo = InMemoryUsageGateRepository()
    repo.add_student(StudentProfile(
        id="s1",
        teacher_id=TEACHER,
        class_id=class_id,
        class_name=class_name,
        class_teacher_id=class_teacher_id if class_id else None,
    ))
    repo.add_chatbot(ChatbotConfig.build(
        id="c1",
        teacher_id=TEACHER,
        allowed_classes=allowed_classes,
        max_attempts=max_attempts,
    ))
    return repo


@pytest.mark.asyncio
async def test_zero_attempts_always_denied():
    repo = _repo(max_attempts=0)
    gate = UsageGate(repo)

    for _ in range(3):
        with pytest.raises(QuotaExceededError) as exc_info:
            await gate.start_session("s1", "c1")
        assert exc_info.value.current_attempts == 0
        assert exc_info.value.max_attempts == 0

    assert repo.sessions == []


@pytest.mark.asyncio
async def test_unlimited_attempts_count_up_by_one():
    repo = _repo(max_attempts=None)
    gate = UsageGate(repo)

    for expected in range(1, 1001):
        started = await gate.start_session("s1", "c1")
        assert started.current_attempts == expected
        assert started.max_attempts is None

    assert len(repo.sessions) == 1000


@pytest.mark.asyncio
@pytest.mark.parametrize("allowed", [None, []])
async def test_open_allowlist_admits_student_without_class(allowed):
    repo = _repo(max_attempts=5, allowed_classes=allowed, class_id=None)

    started = await UsageGate(repo).start_session("s1", "c1")

    assert started.current_attempts == 1


@pytest.mark.asyncio
async def test_allowlist_denies_other_class_and_admits_listed_class():
    denied = _repo(allowed_classes=["A"], class_id="id-b", class_name="B")
    with pytest.raises(ClassNotAllowedError):
        await UsageGate(denied).start_session("s1", "c1")
    assert denied.sessions == []

    admitted = _repo(allowed_classes=["A"], class_id="id-a", class_name="A")
    started = await UsageGate(admitted).start_session("s1", "c1")
    assert started.current_attempts == 1


@pytest.mark.asyncio
async def test_restricted_chatbot_requires_class():
    repo = _repo(allowed_classes=["3-1"], class_id=None)

    with pytest.raises(ClassInfoMissingError):
        await UsageGate(repo).start_session("s1", "c1")
    assert repo.sessions == []


@pytest.mark.asyncio
async def test_class_check_runs_before_quota():
    repo = _repo(max_attempts=0, allowed_classes=["3-1"], class_id="id-32", class_name="3-2")

    with pytest.raises(ClassNotAllowedError):
        await UsageGate(repo).start_session("s1", "c1")


@pytest.mark.asyncio
async def test_limit_two_with_one_prior_session():
    repo = _repo(max_attempts=2)
    await repo.insert_session("s1", "c1", 1)
    gate = UsageGate(repo)

    started = await gate.start_session("s1", "c1")
    assert started.current_attempts == 2
    assert started.max_attempts == 2
    assert started.session.attempt_number == 2

    with pytest.raises(QuotaExceededError) as exc_info:
        await gate.start_session("s1", "c1")
    assert exc_info.value.current_attempts == 2
    assert len(repo.sessions) == 2


@pytest.mark.asyncio
async def test_class_name_mismatch_is_not_allowed():
    repo = _repo(allowed_classes=["3-1"], class_id="id-32", class_name="3-2")

    with pytest.raises(ClassNotAllowedError) as exc_info:
        await UsageGate(repo).start_session("s1", "c1")
    assert exc_info.value.error_code == "class_not_allowed"


@pytest.mark.asyncio
async def test_reset_then_start_reports_first_attempt():
    repo = _repo(max_attempts=3)
    gate = UsageGate(repo)
    for _ in range(3):
        await gate.start_session("s1", "c1")

    deleted = await repo.delete_sessions("c1", TEACHER, ["s1"])
    started = await gate.start_session("s1", "c1")

    assert deleted == 3
    assert started.current_attempts == 1


@pytest.mark.asyncio
async def test_unknown_student_is_profile_not_found():
    repo = _repo()

    with pytest.raises(ProfileNotFoundError):
        await UsageGate(repo).start_session("teacher-1", "c1")
    assert repo.insert_calls == 0


@pytest.mark.asyncio
async def test_unknown_chatbot_is_not_found():
    repo = _repo()

    with pytest.raises(ChatbotNotFoundError):
        await UsageGate(repo).start_session("s1", "missing")
    assert repo.insert_calls == 0


@pytest.mark.asyncio
async def test_resolve_access_does_not_consume_attempt():
    repo = _repo(max_attempts=1, allowed_classes=["3-1"], class_id="id-31", class_name="3-1")

    profile, config = await UsageGate(repo).resolve_access("s1", "c1")

    assert profile.id == "s1"
    assert config.id == "c1"
    assert repo.sessions == []


class TestClassMembership:
    def _config(self, allowed):
        return ChatbotConfig.build(id="c1", teacher_id=TEACHER, allowed_classes=allowed)

    def test_matches_class_id(self):
        profile = StudentProfile(id="s", teacher_id=TEACHER, class_id="cls-9",
                                 class_name="3-1", class_teacher_id=TEACHER)
        assert is_class_allowed(profile, self._config(["cls-9"]))

    def test_matches_name_of_owning_teachers_class(self):
        profile = StudentProfile(id="s", teacher_id=TEACHER, class_id="cls-9",
                                 class_name="3-1", class_teacher_id=TEACHER)
        assert is_class_allowed(profile, self._config(["3-1"]))

    def test_same_name_under_another_teacher_does_not_match(self):
        profile = StudentProfile(id="s", teacher_id="other", class_id="cls-7",
                                 class_name="3-1", class_teacher_id="other")
        assert not is_class_allowed(profile, self._config(["3-1"]))
