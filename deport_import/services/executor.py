from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from ..db.store import RecordStore
from ..logging.error_log import ErrorLogBuffer, ErrorRecord, ErrorType
from ..models.conflict import ConflictAction, DuplicateConflict
from ..models.error_record import GENERAL_FIELD
from ..models.fields import KEY_FIELD
from ..models.import_outcome import ImportOutcome
from ..models.person_record import PersonPayload, PersonRecord
from ..models.row_data import RawRow, parse_key, row_number
from ..models.validation import ValidationIssue
from .conflicts import resolution_map

"""Import execution with per-row error isolation.

Rows are written strictly in input order, one store call at a time. The current
version is looked up again at write time, so a conflict that disappeared (or
appeared) since validation is handled by what the store holds now. A failing row is
recorded and the loop continues; nothing is retried.

Counting:
- new key or update/create_new_version -> imported
- existing key resolved as skip (the default) -> skipped
- unparseable key or any store failure -> error
"""

__all__ = [
    "execute",
    "ProgressCallback",
]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


def _record_error(
    errors: list[ValidationIssue],
    error_log: ErrorLogBuffer | None,
    file_name: str,
    issue: ValidationIssue,
    error_type: ErrorType,
) -> None:
    errors.append(issue)
    if error_log is not None:
        error_log.append(ErrorRecord.from_issue(file_name, issue, error_type))


def _write_row(
    payload: PersonPayload,
    action: ConflictAction,
    existing: PersonRecord | None,
    actor_id: str,
    store: RecordStore,
    now: datetime,
) -> bool:
    """Apply one row. Returns True when something was written, False for a skip."""
    key = payload.running_number
    if existing is None:
        store.insert_new_current_version(
            PersonRecord.from_payload(payload, valid_from=now, updated_by=actor_id)
        )
        return True
    if action is ConflictAction.SKIP:
        return False
    if action is ConflictAction.UPDATE:
        store.update_current_version_in_place(key, payload, actor_id)
        return True
    # CREATE_NEW_VERSION: 旧版クローズ + 新版挿入を 1 トランザクションで
    with store.transaction():
        store.close_current_version(key, now, updated_by=actor_id)
        store.insert_new_current_version(
            PersonRecord.from_payload(payload, valid_from=now, updated_by=actor_id)
        )
    return True


def execute(
    rows: Sequence[RawRow],
    actor_id: str,
    store: RecordStore,
    conflicts: Sequence[DuplicateConflict] = (),
    on_progress: ProgressCallback | None = None,
    *,
    error_log: ErrorLogBuffer | None = None,
    file_name: str = "",
    now: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> ImportOutcome:
    """Write a validated batch to the store.

    Args:
        rows: decoded rows (the caller is expected to have validated them)
        actor_id: identity stamped into ``updated_by``
        store: target record store
        conflicts: detector output with caller-chosen actions; keys without an entry
            default to skip
        on_progress: called as ``(percent, message)`` after every row and once more
            with ``(100, "Import completed")``
        error_log: optional buffer receiving one ErrorRecord per failed row
        file_name: source name written into error records
        now: clock, injectable for tests

    Returns:
        ImportOutcome with counters and the row-level write errors
    """
    start_time = datetime.now(UTC)
    resolutions = resolution_map(conflicts)
    total = len(rows)
    imported = skipped = failed = 0
    errors: list[ValidationIssue] = []
    key_name = KEY_FIELD.value

    logger.info("import started rows=%d conflicts=%d actor=%s", total, len(conflicts), actor_id)

    for index, row in enumerate(rows):
        line = row_number(index)
        key = parse_key(row)
        if key is None:
            raw = (row.get(key_name) or "").strip()
            issue = ValidationIssue.error(line, key_name, raw, f"Invalid {key_name}")
            _record_error(errors, error_log, file_name, issue, ErrorType.INVALID_KEY)
            failed += 1
            logger.warning("row %d: invalid %s %r", line, key_name, raw)
        else:
            try:
                payload = PersonPayload.from_row(row)
                existing = store.find_current_by_logical_key(key)
                action = resolutions.get(key, ConflictAction.SKIP)
                if _write_row(payload, action, existing, actor_id, store, now()):
                    imported += 1
                    logger.debug("row %d: %s %d written (%s)", line, key_name, key,
                                 "insert" if existing is None else action.value)
                else:
                    skipped += 1
                    logger.debug("row %d: %s %d skipped", line, key_name, key)
            except Exception as e:
                issue = ValidationIssue.error(line, GENERAL_FIELD, "", f"Import error: {e}")
                _record_error(errors, error_log, file_name, issue, ErrorType.WRITE_ERROR)
                failed += 1
                logger.error("row %d: %s %d failed: %s", line, key_name, key, e)

        if on_progress is not None:
            on_progress(round((index + 1) / total * 100), f"Processed row {line}")

    if on_progress is not None:
        on_progress(100, "Import completed")

    end_time = datetime.now(UTC)
    outcome = ImportOutcome(
        success=failed == 0,
        imported_count=imported,
        skipped_count=skipped,
        error_count=failed,
        total_rows=total,
        errors=errors,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
    )
    logger.info(
        "import finished imported=%d skipped=%d errors=%d", imported, skipped, failed
    )
    return outcome
