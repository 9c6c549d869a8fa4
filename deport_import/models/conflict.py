from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .person_record import PersonRecord

"""DuplicateConflict model and ConflictAction enum.

A conflict is created by the detector with action=SKIP and handed to the caller,
who may change ``action`` before passing the list to the executor. It is the only
mutable model in the pipeline.
"""

__all__ = [
    "ConflictAction",
    "ExistingRecordSummary",
    "DuplicateConflict",
]


class ConflictAction(Enum):
    """Resolution for a row whose running number already has a current version.

    - SKIP: leave the stored record untouched
    - UPDATE: correct the current version in place (no new history entry)
    - CREATE_NEW_VERSION: close the current version, insert a new current one
    """
    SKIP = "skip"
    UPDATE = "update"
    CREATE_NEW_VERSION = "create_new_version"


@dataclass(frozen=True)
class ExistingRecordSummary:
    """Short description of the stored current version shown to the caller."""
    id: str | None
    family_name: str | None
    given_name: str | None
    valid_from: datetime | None

    @classmethod
    def from_record(cls, record: PersonRecord) -> ExistingRecordSummary:
        return cls(
            id=record.id,
            family_name=record.family_name,
            given_name=record.given_name,
            valid_from=record.valid_from,
        )


@dataclass
class DuplicateConflict:
    row: int  # 1-based line number
    logical_key: int
    existing_record: ExistingRecordSummary
    action: ConflictAction = ConflictAction.SKIP
