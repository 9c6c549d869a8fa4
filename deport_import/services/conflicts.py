from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from ..db.store import RecordStore
from ..models.conflict import ConflictAction, DuplicateConflict, ExistingRecordSummary
from ..models.row_data import RawRow, parse_key, row_number

"""Conflict detection against the record store.

Every row whose running number already has a current version yields one
DuplicateConflict (action=SKIP). The caller decides the final action; the executor
reads it back via :func:`resolution_map`.
"""

__all__ = [
    "detect_conflicts",
    "apply_resolutions",
    "resolution_map",
]

logger = logging.getLogger(__name__)


def detect_conflicts(rows: Sequence[RawRow], store: RecordStore) -> list[DuplicateConflict]:
    conflicts: list[DuplicateConflict] = []
    for index, row in enumerate(rows):
        key = parse_key(row)
        if key is None:
            continue
        try:
            existing = store.find_current_by_logical_key(key)
        except Exception as e:
            logger.warning("conflict lookup failed row=%d key=%d: %s", row_number(index), key, e)
            continue
        if existing is not None:
            conflicts.append(
                DuplicateConflict(
                    row=row_number(index),
                    logical_key=key,
                    existing_record=ExistingRecordSummary.from_record(existing),
                )
            )
    logger.info("detected %d conflict(s)", len(conflicts))
    return conflicts


def apply_resolutions(
    conflicts: Sequence[DuplicateConflict],
    resolutions: Mapping[int, ConflictAction],
    default: ConflictAction = ConflictAction.SKIP,
) -> None:
    """Set ``action`` on each conflict from a per-key choice, else ``default``."""
    for conflict in conflicts:
        conflict.action = resolutions.get(conflict.logical_key, default)


def resolution_map(conflicts: Sequence[DuplicateConflict]) -> dict[int, ConflictAction]:
    """Logical key -> chosen action. A later entry for the same key wins."""
    return {c.logical_key: c.action for c in conflicts}
