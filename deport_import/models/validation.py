from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Validation issue / result models.

Errors block the row they belong to; warnings are advisory only.
"""

__all__ = [
    "Severity",
    "ValidationIssue",
    "ValidationResult",
]


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """One finding about one cell (or one row when field is "general")."""
    row: int  # 1-based line number (header = 1)
    field: str
    raw_value: str
    message: str
    severity: Severity

    @classmethod
    def error(cls, row: int, field: str, raw_value: str, message: str) -> ValidationIssue:
        return cls(row=row, field=field, raw_value=raw_value, message=message, severity=Severity.ERROR)

    @classmethod
    def warning(cls, row: int, field: str, raw_value: str, message: str) -> ValidationIssue:
        return cls(
            row=row, field=field, raw_value=raw_value, message=message, severity=Severity.WARNING
        )

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one batch."""
    is_valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    valid_rows: int = 0
    total_rows: int = 0
