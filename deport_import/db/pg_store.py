from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

import psycopg2
import psycopg2.extras

from ..models.fields import FieldName
from ..models.person_record import FIELD_ATTRIBUTES, PersonPayload, PersonRecord
from .store import StoreError

"""PostgreSQL record store (psycopg2).

Table layout: one row per version. German column names match the registry headers;
``valid_from`` / ``valid_to`` / ``updated_by`` carry the bitemporal metadata. A
partial unique index on "Laufendenr" WHERE valid_to IS NULL enforces one current
version per running number at the database level.

Writes outside ``transaction()`` are committed immediately; inside, they commit or
roll back together.
"""

__all__ = [
    "PostgresRecordStore",
]

logger = logging.getLogger(__name__)

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# 列順 = FieldName 定義順
_DOMAIN_COLUMNS: tuple[str, ...] = tuple(f.value for f in FieldName)
_KEY_COLUMN = FieldName.RUNNING_NUMBER.value

_COLUMN_TYPES: dict[str, str] = {
    FieldName.PAGE.value: "integer",
    FieldName.FAMILY_NUMBER.value: "integer",
    FieldName.ENTRY_NUMBER.value: "integer",
    FieldName.RUNNING_NUMBER.value: "integer NOT NULL",
    FieldName.BIRTH_YEAR.value: "integer",
}


def _quote(column: str) -> str:
    return f'"{column}"'


class PostgresRecordStore:
    """RecordStore backed by a psycopg2 connection."""

    def __init__(self, connection: Any, table: str = "deport") -> None:
        if not _TABLE_RE.match(table):
            raise StoreError(f"invalid table name: {table!r}")
        self._conn = connection
        self._table = table
        self._depth = 0

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _row_to_record(self, row: dict[str, Any]) -> PersonRecord:
        values = {attr: row.get(name.value) for name, attr in FIELD_ATTRIBUTES.items()}
        rid = row.get("id")
        return PersonRecord(
            **values,
            id=str(rid) if rid is not None else None,
            valid_from=row.get("valid_from"),
            valid_to=row.get("valid_to"),
            updated_by=row.get("updated_by"),
        )

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run one statement; commit right away unless inside transaction()."""
        try:
            with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(sql, params)
                rows = cur.fetchall() if cur.description is not None else []
                rowcount = cur.rowcount
            if self._depth == 0:
                self._conn.commit()
        except psycopg2.Error as e:
            if self._depth == 0:
                self._conn.rollback()
            raise StoreError(str(e).strip()) from e
        logger.debug("sql=%s rowcount=%s", sql.split()[0], rowcount)
        return [dict(r) for r in rows]

    def _require_current(self, key: int) -> PersonRecord:
        current = self.find_current_by_logical_key(key)
        if current is None:
            raise StoreError(f"no current version for Laufendenr {key}")
        return current

    # ------------------------------------------------------------------
    # schema
    # ------------------------------------------------------------------
    def ensure_schema(self) -> None:
        """Create the version table and the one-current-version index if missing."""
        cols = ", ".join(
            f"{_quote(c)} {_COLUMN_TYPES.get(c, 'text')}" for c in _DOMAIN_COLUMNS
        )
        self._execute(
            f"CREATE TABLE IF NOT EXISTS {self._table} ("
            f"id uuid PRIMARY KEY, {cols}, "
            "valid_from timestamptz NOT NULL, valid_to timestamptz, updated_by text)"
        )
        self._execute(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {self._table}_current_key "
            f"ON {self._table} ({_quote(_KEY_COLUMN)}) WHERE valid_to IS NULL"
        )

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------
    def find_current_by_logical_key(self, key: int) -> PersonRecord | None:
        rows = self._execute(
            f"SELECT * FROM {self._table} WHERE {_quote(_KEY_COLUMN)} = %s AND valid_to IS NULL",
            (key,),
        )
        return self._row_to_record(rows[0]) if rows else None

    def find_all_versions_by_logical_key(self, key: int) -> list[PersonRecord]:
        rows = self._execute(
            f"SELECT * FROM {self._table} WHERE {_quote(_KEY_COLUMN)} = %s "
            "ORDER BY valid_from DESC",
            (key,),
        )
        return [self._row_to_record(r) for r in rows]

    def insert_new_current_version(self, record: PersonRecord) -> PersonRecord:
        columns = ["id", *_DOMAIN_COLUMNS, "valid_from", "valid_to", "updated_by"]
        values: list[Any] = [record.id or str(uuid.uuid4())]
        values.extend(getattr(record, FIELD_ATTRIBUTES[FieldName(c)]) for c in _DOMAIN_COLUMNS)
        values.extend([record.valid_from or datetime.now(UTC), None, record.updated_by])
        cols_sql = ",".join(_quote(c) for c in columns)
        placeholders = ",".join(["%s"] * len(columns))
        rows = self._execute(
            f"INSERT INTO {self._table} ({cols_sql}) VALUES ({placeholders}) RETURNING *",
            values,
        )
        return self._row_to_record(rows[0])

    def close_current_version(
        self, key: int, closed_at: datetime, updated_by: str | None = None
    ) -> None:
        self._require_current(key)
        if updated_by is None:
            self._execute(
                f"UPDATE {self._table} SET valid_to = %s "
                f"WHERE {_quote(_KEY_COLUMN)} = %s AND valid_to IS NULL",
                (closed_at, key),
            )
        else:
            self._execute(
                f"UPDATE {self._table} SET valid_to = %s, updated_by = %s "
                f"WHERE {_quote(_KEY_COLUMN)} = %s AND valid_to IS NULL",
                (closed_at, updated_by, key),
            )

    def update_current_version_in_place(
        self, key: int, payload: PersonPayload, updated_by: str
    ) -> None:
        self._require_current(key)
        # Laufendenr は業務キーなので更新対象外
        columns = [c for c in _DOMAIN_COLUMNS if c != _KEY_COLUMN]
        assignments = ", ".join(f"{_quote(c)} = %s" for c in columns)
        params: list[Any] = [getattr(payload, FIELD_ATTRIBUTES[FieldName(c)]) for c in columns]
        params.extend([updated_by, key])
        self._execute(
            f"UPDATE {self._table} SET {assignments}, updated_by = %s "
            f"WHERE {_quote(_KEY_COLUMN)} = %s AND valid_to IS NULL",
            params,
        )

    def delete_current_version(self, key: int, deleted_at: datetime, updated_by: str) -> None:
        self.close_current_version(key, deleted_at, updated_by=updated_by)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._depth:
            # 入れ子は外側のトランザクションに合流
            yield
            return
        self._depth += 1
        try:
            yield
            self._conn.commit()
        except BaseException:
            self._conn.rollback()
            raise
        finally:
            self._depth -= 1
