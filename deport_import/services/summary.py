from __future__ import annotations

import math
from collections.abc import Sequence

from ..models.conflict import ConflictAction, DuplicateConflict
from ..models.import_outcome import ImportOutcome, ImportSummary
from ..models.row_data import RawRow

"""Pre-import summary and SUMMARY line rendering.

SUMMARY format (one line per import run)::

    SUMMARY rows=<total> imported=<n> skipped=<n> errors=<n> elapsed_sec=<s> throughput_rps=<r>
"""

__all__ = [
    "MS_PER_ROW",
    "estimate_import_time",
    "prepare_import_summary",
    "render_summary_line",
]

# 1 行あたりの概算 (DB 往復込み)
MS_PER_ROW = 100


def estimate_import_time(row_count: int) -> str:
    estimated_ms = row_count * MS_PER_ROW
    if estimated_ms < 1000:
        return "Less than 1 second"
    if estimated_ms < 60_000:
        return f"About {math.ceil(estimated_ms / 1000)} seconds"
    return f"About {math.ceil(estimated_ms / 60_000)} minutes"


def prepare_import_summary(
    rows: Sequence[RawRow], conflicts: Sequence[DuplicateConflict]
) -> ImportSummary:
    """Overview shown before writing: rows without a conflict count as new records.

    The time estimate excludes skipped rows.
    """
    total = len(rows)
    counts = {action: 0 for action in ConflictAction}
    for conflict in conflicts:
        counts[conflict.action] += 1
    skips = counts[ConflictAction.SKIP]
    return ImportSummary(
        total_rows=total,
        new_records=total - len(conflicts),
        updates=counts[ConflictAction.UPDATE],
        new_versions=counts[ConflictAction.CREATE_NEW_VERSION],
        skips=skips,
        estimated_time=estimate_import_time(total - skips),
    )


def _format_number(value: float) -> str:
    """Render without scientific notation; integral values without decimals."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(outcome: ImportOutcome) -> str:
    """Render the SUMMARY line for one executor run.

    Examples:
        >>> render_summary_line(ImportOutcome(
        ...     success=True, imported_count=2, skipped_count=0, error_count=0,
        ...     total_rows=2, elapsed_seconds=0.5))
        'SUMMARY rows=2 imported=2 skipped=0 errors=0 elapsed_sec=0.5 throughput_rps=4'
    """
    elapsed = outcome.elapsed_seconds
    throughput = outcome.imported_count / elapsed if elapsed > 0 else 0.0
    return (
        f"SUMMARY rows={outcome.total_rows} "
        f"imported={outcome.imported_count} "
        f"skipped={outcome.skipped_count} "
        f"errors={outcome.error_count} "
        f"elapsed_sec={_format_number(elapsed)} "
        f"throughput_rps={_format_number(throughput)}"
    )
