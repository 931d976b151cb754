"""
Tests for domain model invariants.
"""

import pytest

from clip_insight.core.categories import Category
from clip_insight.core.errors import ErrorKind
from clip_insight.core.models import ClassificationResult, PromptEntry, normalize_tags


class TestClassificationResult:
    """Test the success/failure invariant."""

    def test_success_with_category(self):
        result = ClassificationResult(success=True, category=Category.TEXT, summary="Hi", latency=0.1)
        assert result.error_message is None

    def test_success_cannot_carry_error(self):
        with pytest.raises(ValueError, match="cannot carry an error"):
            ClassificationResult(success=True, error_message="oops")

    def test_failure_cannot_carry_category(self):
        with pytest.raises(ValueError, match="category or summary"):
            ClassificationResult(success=False, error_message="x", category=Category.CODE)

    def test_failure_cannot_carry_summary(self):
        with pytest.raises(ValueError, match="category or summary"):
            ClassificationResult(success=False, error_message="x", summary="s")

    @pytest.mark.parametrize("kwargs", [{"latency": -0.1}, {"estimated_cost": -1.0}])
    def test_negative_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ClassificationResult(success=True, **kwargs)

    def test_failure_factory(self):
        result = ClassificationResult.failure(ErrorKind.TRANSPORT_FAILURE, "offline", latency=1.5)

        assert result.success is False
        assert result.error_kind == ErrorKind.TRANSPORT_FAILURE
        assert result.error_message == "offline"
        assert result.category is None


class TestPromptEntry:

    def test_tags_become_frozenset(self):
        entry = PromptEntry("text", ["a", "b", "a"])
        assert entry.tags == frozenset({"a", "b"})

    def test_equality_by_value(self):
        assert PromptEntry("t", {"x"}) == PromptEntry("t", frozenset({"x"}))

    def test_normalize_tags_accepts_single_string(self):
        assert normalize_tags("solo") == frozenset({"solo"})
