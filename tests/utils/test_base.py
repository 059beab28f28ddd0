"""Tests for shared result containers."""

from hailmap.utils.base import ValidationResult


class TestValidationResult:
    """Tests for ValidationResult."""

    def test_defaults(self):
        result = ValidationResult(valid=True, total_features=3)
        assert result.invalid_count == 0
        assert result.issues == []
        assert result.stats == {}

    def test_default_lists_not_shared(self):
        """Each instance should get its own issues list."""
        a = ValidationResult(valid=True, total_features=0)
        b = ValidationResult(valid=True, total_features=0)
        a.issues.append("problem")
        assert b.issues == []

    def test_str_valid(self):
        result = ValidationResult(valid=True, total_features=5)
        assert str(result) == "ValidationResult(VALID, features=5, invalid=0)"

    def test_str_invalid(self):
        result = ValidationResult(valid=False, total_features=5, invalid_count=2)
        assert str(result) == "ValidationResult(INVALID, features=5, invalid=2)"
