from __future__ import annotations

import copy
import uuid
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from ..models.person_record import PersonPayload, PersonRecord

"""Record store contract and in-memory implementation.

The pipeline never reaches for a global client: every entry point takes a
RecordStore. Invariant kept by every implementation: per running number at most one
record has ``valid_to is None``. History is append-only; closing a version sets
``valid_to`` and nothing else.
"""

__all__ = [
    "StoreError",
    "RecordStore",
    "InMemoryRecordStore",
]


class StoreError(Exception):
    """Store contract violation or backend failure."""


@runtime_checkable
class RecordStore(Protocol):
    def find_current_by_logical_key(self, key: int) -> PersonRecord | None: ...

    def find_all_versions_by_logical_key(self, key: int) -> list[PersonRecord]: ...

    def insert_new_current_version(self, record: PersonRecord) -> PersonRecord: ...

    def close_current_version(
        self, key: int, closed_at: datetime, updated_by: str | None = None
    ) -> None: ...

    def update_current_version_in_place(
        self, key: int, payload: PersonPayload, updated_by: str
    ) -> None: ...

    def delete_current_version(self, key: int, deleted_at: datetime, updated_by: str) -> None: ...

    def transaction(self) -> AbstractContextManager[None]: ...


class InMemoryRecordStore:
    """Dict-backed store for tests and dry runs.

    ``transaction()`` snapshots the version lists and restores them when the block
    raises, so grouped writes are all-or-nothing like the PostgreSQL store.
    """

    def __init__(self, records: list[PersonRecord] | None = None) -> None:
        self._versions: dict[int, list[PersonRecord]] = {}
        for record in records or []:
            self._versions.setdefault(record.running_number, []).append(record)

    def _current_index(self, key: int) -> int | None:
        for idx, rec in enumerate(self._versions.get(key, [])):
            if rec.valid_to is None:
                return idx
        return None

    def find_current_by_logical_key(self, key: int) -> PersonRecord | None:
        idx = self._current_index(key)
        return None if idx is None else self._versions[key][idx]

    def find_all_versions_by_logical_key(self, key: int) -> list[PersonRecord]:
        epoch = datetime.min.replace(tzinfo=UTC)
        return sorted(
            self._versions.get(key, []),
            key=lambda r: r.valid_from or epoch,
            reverse=True,
        )

    def insert_new_current_version(self, record: PersonRecord) -> PersonRecord:
        key = record.running_number
        if self._current_index(key) is not None:
            raise StoreError(f"Laufendenr {key} already has a current version")
        stored = replace(
            record,
            id=record.id or str(uuid.uuid4()),
            valid_from=record.valid_from or datetime.now(UTC),
            valid_to=None,
        )
        self._versions.setdefault(key, []).append(stored)
        return stored

    def close_current_version(
        self, key: int, closed_at: datetime, updated_by: str | None = None
    ) -> None:
        idx = self._current_index(key)
        if idx is None:
            raise StoreError(f"no current version for Laufendenr {key}")
        current = self._versions[key][idx]
        changes: dict[str, object] = {"valid_to": closed_at}
        if updated_by is not None:
            changes["updated_by"] = updated_by
        self._versions[key][idx] = replace(current, **changes)

    def update_current_version_in_place(
        self, key: int, payload: PersonPayload, updated_by: str
    ) -> None:
        idx = self._current_index(key)
        if idx is None:
            raise StoreError(f"no current version for Laufendenr {key}")
        current = self._versions[key][idx]
        # 業務キー・id・valid_from は維持
        fields = payload.as_dict()
        fields["running_number"] = key
        self._versions[key][idx] = replace(current, **fields, updated_by=updated_by)

    def delete_current_version(self, key: int, deleted_at: datetime, updated_by: str) -> None:
        self.close_current_version(key, deleted_at, updated_by=updated_by)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        snapshot = copy.deepcopy(self._versions)
        try:
            yield
        except BaseException:
            self._versions = snapshot
            raise

    def current_records(self) -> list[PersonRecord]:
        """All current versions ordered by running number."""
        out = [self.find_current_by_logical_key(k) for k in sorted(self._versions)]
        return [r for r in out if r is not None]

    def __len__(self) -> int:
        return sum(len(v) for v in self._versions.values())
