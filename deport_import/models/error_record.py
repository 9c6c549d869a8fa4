from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum

from .validation import ValidationIssue

"""Error log line model.

Every failed row (or failed file) of an import run becomes one JSON line with
exactly six keys. ``row`` is the 1-based line number of the source file; file-level
failures use ``FILE_LEVEL_ROW`` and the field ``general``.
"""

__all__ = [
    "ErrorType",
    "ErrorRecord",
    "FILE_LEVEL_ROW",
    "GENERAL_FIELD",
]

FILE_LEVEL_ROW = -1
GENERAL_FIELD = "general"


class ErrorType(str, Enum):
    DECODE_ERROR = "DECODE_ERROR"  # ファイル単位
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_KEY = "INVALID_KEY"  # Laufendenr が解釈不能
    WRITE_ERROR = "WRITE_ERROR"


@dataclass(frozen=True)
class ErrorRecord:
    """One line of the JSON Lines error log.

    Attributes:
        timestamp: ISO8601 UTC with 'Z' suffix
        file: source file name (no directory)
        row: source line number, FILE_LEVEL_ROW when no row applies
        field: German column header, or "general"
        error_type: one of ErrorType (serialized as its UPPER_SNAKE value)
        message: human readable message, same text as printed on the console
    """
    timestamp: str
    file: str
    row: int
    field: str
    error_type: str
    message: str

    @staticmethod
    def create(file: str, row: int, field: str, error_type: str, message: str) -> ErrorRecord:
        """Build a record stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            field=field,
            error_type=ErrorType(error_type).value,
            message=message,
        )

    @classmethod
    def from_issue(cls, file: str, issue: ValidationIssue, error_type: ErrorType) -> ErrorRecord:
        return cls.create(file, issue.row, issue.field, error_type, issue.message)

    @classmethod
    def for_file(cls, file: str, error_type: ErrorType, message: str) -> ErrorRecord:
        return cls.create(file, FILE_LEVEL_ROW, GENERAL_FIELD, error_type, message)

    def to_json_line(self) -> str:
        # ウムラウトはそのまま出力
        return json.dumps(asdict(self), ensure_ascii=False)
