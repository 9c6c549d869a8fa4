from __future__ import annotations

from datetime import UTC, datetime

import psycopg2
import pytest

from deport_import.db.pg_store import PostgresRecordStore
from deport_import.db.store import RecordStore, StoreError
from deport_import.models.person_record import PersonPayload, PersonRecord

T1 = datetime(2024, 1, 1, tzinfo=UTC)
T2 = datetime(2024, 6, 1, tzinfo=UTC)


class DummyCursor:
    def __init__(self, conn: DummyConnection) -> None:
        self.conn = conn
        self.description = None
        self.rowcount = 0
        self._rows: list[dict] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=()):
        self.conn.queries.append((sql, list(params)))
        if self.conn.fail_on and self.conn.fail_on in sql:
            raise psycopg2.Error("server closed the connection")
        # 結果を返す文 (SELECT / RETURNING) だけキューから取り出す
        if sql.startswith("SELECT") or "RETURNING" in sql:
            self._rows = self.conn.results.pop(0) if self.conn.results else []
            self.description = [("col",)]
        else:
            self._rows = []
            self.description = None
        self.rowcount = len(self._rows)

    def fetchall(self):
        return self._rows


class DummyConnection:
    def __init__(self, results: list[list[dict]] | None = None) -> None:
        self.queries: list[tuple[str, list]] = []
        self.results = list(results or [])
        self.commits = 0
        self.rollbacks = 0
        self.fail_on: str | None = None

    def cursor(self, cursor_factory=None):
        return DummyCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


def _db_row(key: int = 1, **kw) -> dict:
    row = {
        "id": "7d9f3c1e-0000-4000-8000-000000000001",
        "Seite": 3,
        "Familiennr": 1,
        "Eintragsnr": 2,
        "Laufendenr": key,
        "Familienname": "Meier",
        "Vorname": "Hans",
        "Vatersname": None,
        "Familienrolle": "Vater",
        "Geschlecht": "männlich",
        "Geburtsjahr": 1890,
        "Geburtsort": "Dorpat",
        "Arbeitsort": None,
        "valid_from": T1,
        "valid_to": None,
        "updated_by": "seed",
    }
    row.update(kw)
    return row


def test_pg_store_satisfies_protocol():
    assert isinstance(PostgresRecordStore(DummyConnection()), RecordStore)


def test_invalid_table_name_rejected():
    with pytest.raises(StoreError):
        PostgresRecordStore(DummyConnection(), table="deport; DROP TABLE x")


def test_find_current_maps_columns():
    conn = DummyConnection([[_db_row(1)]])
    rec = PostgresRecordStore(conn).find_current_by_logical_key(1)
    assert rec is not None
    assert rec.running_number == 1
    assert rec.page == 3
    assert rec.family_name == "Meier"
    assert rec.birth_year == 1890
    assert rec.valid_from == T1
    assert rec.is_current
    sql, params = conn.queries[0]
    assert 'WHERE "Laufendenr" = %s AND valid_to IS NULL' in sql
    assert params == [1]
    assert conn.commits == 1


def test_find_current_none_when_no_row():
    conn = DummyConnection([[]])
    assert PostgresRecordStore(conn).find_current_by_logical_key(1) is None


def test_find_all_versions_ordered_desc():
    conn = DummyConnection([[_db_row(1, valid_from=T2), _db_row(1, valid_to=T2)]])
    versions = PostgresRecordStore(conn).find_all_versions_by_logical_key(1)
    assert len(versions) == 2
    assert "ORDER BY valid_from DESC" in conn.queries[0][0]


def test_insert_uses_all_columns_and_returning():
    conn = DummyConnection([[_db_row(5)]])
    stored = PostgresRecordStore(conn).insert_new_current_version(
        PersonRecord(running_number=5, family_name="Meier", valid_from=T1, updated_by="alice")
    )
    sql, params = conn.queries[0]
    assert sql.startswith('INSERT INTO deport ("id","Seite"')
    assert sql.endswith("RETURNING *")
    assert len(params) == 16
    assert params[4] == 5  # Laufendenr
    assert params[-3:] == [T1, None, "alice"]
    assert stored.running_number == 5


def test_close_current_version_sets_valid_to_and_actor():
    conn = DummyConnection([[_db_row(1)]])
    PostgresRecordStore(conn).close_current_version(1, T2, updated_by="bob")
    sql, params = conn.queries[1]
    assert sql.startswith("UPDATE deport SET valid_to = %s, updated_by = %s")
    assert params == [T2, "bob", 1]


def test_close_without_current_raises_before_update():
    conn = DummyConnection([[]])
    with pytest.raises(StoreError):
        PostgresRecordStore(conn).close_current_version(1, T2)
    assert len(conn.queries) == 1


def test_update_in_place_never_touches_key_or_valid_from():
    conn = DummyConnection([[_db_row(1)]])
    payload = PersonPayload(running_number=1, family_name="Schmitt")
    PostgresRecordStore(conn).update_current_version_in_place(1, payload, "bob")
    sql, params = conn.queries[1]
    assert sql.count('"Laufendenr" = %s') == 1  # WHERE only
    assert "valid_from" not in sql
    assert params[-2:] == ["bob", 1]
    assert "Schmitt" in params


def test_delete_current_version_is_close_out():
    conn = DummyConnection([[_db_row(1)]])
    PostgresRecordStore(conn).delete_current_version(1, T2, "admin")
    sql, params = conn.queries[1]
    assert sql.startswith("UPDATE deport SET valid_to")
    assert not any(q.startswith("DELETE") for q, _ in conn.queries)


def test_transaction_commits_once():
    conn = DummyConnection([[_db_row(1)], [_db_row(1)]])
    store = PostgresRecordStore(conn)
    with store.transaction():
        store.close_current_version(1, T2)
        store.insert_new_current_version(PersonRecord(running_number=1, valid_from=T2))
    assert conn.commits == 1
    assert conn.rollbacks == 0


def test_transaction_rolls_back_on_error():
    conn = DummyConnection([[_db_row(1)]])
    conn.fail_on = "INSERT"
    store = PostgresRecordStore(conn)
    with pytest.raises(StoreError):
        with store.transaction():
            store.close_current_version(1, T2)
            store.insert_new_current_version(PersonRecord(running_number=1, valid_from=T2))
    assert conn.commits == 0
    assert conn.rollbacks == 1


def test_driver_error_outside_transaction_rolls_back():
    conn = DummyConnection()
    conn.fail_on = "SELECT"
    with pytest.raises(StoreError) as exc:
        PostgresRecordStore(conn).find_current_by_logical_key(1)
    assert "server closed the connection" in str(exc.value)
    assert conn.rollbacks == 1


def test_ensure_schema_creates_partial_unique_index():
    conn = DummyConnection()
    PostgresRecordStore(conn, table="deport_test").ensure_schema()
    create_table, create_index = (q for q, _ in conn.queries)
    assert create_table.startswith("CREATE TABLE IF NOT EXISTS deport_test")
    assert '"Laufendenr" integer NOT NULL' in create_table
    assert "CREATE UNIQUE INDEX IF NOT EXISTS deport_test_current_key" in create_index
    assert create_index.endswith("WHERE valid_to IS NULL")
