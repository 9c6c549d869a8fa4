from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .validation import ValidationIssue

"""Import outcome models.

ImportOutcome aggregates one executor run; ImportSummary is the pre-import overview
shown to the caller before anything is written.
"""

__all__ = [
    "ImportOutcome",
    "ImportSummary",
]


@dataclass(frozen=True)
class ImportOutcome:
    """Aggregated result of one executor run.

    imported + skipped + errors <= total_rows always holds.
    """
    success: bool  # error_count == 0
    imported_count: int
    skipped_count: int
    error_count: int
    total_rows: int
    errors: list[ValidationIssue] = field(default_factory=list)  # 書き込み時エラーのみ
    start_time: datetime | None = None
    end_time: datetime | None = None
    elapsed_seconds: float = 0.0


@dataclass(frozen=True)
class ImportSummary:
    """Pre-import overview derived from rows and resolved conflicts."""
    total_rows: int
    new_records: int
    updates: int
    new_versions: int
    skips: int
    estimated_time: str
