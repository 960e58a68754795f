"""Tests for AttemptLimit and the allowlist value types."""

import pytest

from qbot.app.services.gate import AttemptLimit, ChatbotConfig, LimitKind


class TestAttemptLimit:
    def test_null_column_is_unlimited(self):
        limit = AttemptLimit.from_column(None)

        assert limit.kind is LimitKind.UNLIMITED
        assert limit.allows(0)
        assert limit.allows(10_000)
        assert limit.as_column() is None

    def test_zero_column_never_allows(self):
        limit = AttemptLimit.from_column(0)

        assert limit.kind is LimitKind.ZERO
        assert not limit.allows(0)
        assert limit.as_column() == 0

    def test_limited_allows_below_maximum(self):
        limit = AttemptLimit.from_column(2)

        assert limit.kind is LimitKind.LIMITED
        assert limit.allows(0)
        assert limit.allows(1)
        assert not limit.allows(2)
        assert not limit.allows(3)
        assert limit.as_column() == 2

    def test_negative_column_rejected(self):
        with pytest.raises(ValueError):
            AttemptLimit.from_column(-1)

    def test_limited_requires_positive(self):
        with pytest.raises(ValueError):
            AttemptLimit.limited(0)


class TestChatbotConfig:
    @pytest.mark.parametrize("raw", [None, []])
    def test_null_or_empty_allowlist_is_open(self, raw):
        config = ChatbotConfig.build(id="c", teacher_id="t", allowed_classes=raw)

        assert config.is_open
        assert config.allowed_classes == frozenset()

    def test_allowlist_becomes_frozenset(self):
        config = ChatbotConfig.build(
            id="c", teacher_id="t", allowed_classes=["3-1", "3-1", "3-2"], max_attempts=3
        )

        assert config.allowed_classes == frozenset({"3-1", "3-2"})
        assert not config.is_open
        assert config.limit == AttemptLimit.limited(3)
