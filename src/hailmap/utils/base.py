"""Shared result containers."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ValidationResult:
    """Result of geometry or data validation.

    Attributes:
        valid: Whether the data passed all validation checks
        total_features: Number of features/records inspected
        invalid_count: Number of features/records that failed a check
        issues: List of validation issues found
        stats: Dictionary of summary statistics
    """

    valid: bool
    total_features: int
    invalid_count: int = 0
    issues: list[str] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        status = "VALID" if self.valid else "INVALID"
        return (
            f"ValidationResult({status}, "
            f"features={self.total_features}, "
            f"invalid={self.invalid_count})"
        )
