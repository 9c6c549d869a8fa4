from __future__ import annotations

import json
from pathlib import Path

from deport_import.cli import main as cli_main
from deport_import.db.store import InMemoryRecordStore, StoreError
from deport_import.logging.init import reset_logging

"""Partial failure: failing rows are isolated, logged, and the rest is written."""

HEADER = (
    "Seite;Familiennr;Eintragsnr;Laufendenr;Familienname;Vorname;Vatersname;"
    "Familienrolle;Geschlecht;Geburtsjahr;Geburtsort;Arbeitsort"
)


class FlakyStore(InMemoryRecordStore):
    """Insert fails for the configured running numbers."""

    def __init__(self, failing: set[int]) -> None:
        super().__init__()
        self.failing = failing

    def insert_new_current_version(self, record):
        if record.running_number in self.failing:
            raise StoreError(f"duplicate key value for Laufendenr {record.running_number}")
        return super().insert_new_current_version(record)


def test_run_partial_failure(write_config, temp_workdir: Path, capsys):
    reset_logging()
    lines = [HEADER] + [
        f"1;1;{k};{k};Name{k};Vor{k};;unbekannt;unbekannt;1900;Ort;" for k in range(1, 6)
    ]
    src = temp_workdir / "data" / "liste.csv"
    src.write_text("\n".join(lines) + "\n", encoding="utf-8")

    store = FlakyStore({2, 4})
    code = cli_main(["import", str(src), "--actor", "alice"], store=store)
    out = capsys.readouterr().out

    assert code == 2
    assert "SUMMARY rows=5 imported=3 skipped=0 errors=2" in out
    assert [r.running_number for r in store.current_records()] == [1, 3, 5]

    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    records = [json.loads(line) for line in logs[0].read_text(encoding="utf-8").splitlines()]
    assert [(r["row"], r["error_type"]) for r in records] == [(3, "WRITE_ERROR"), (5, "WRITE_ERROR")]
    assert all(r["file"] == "liste.csv" for r in records)
    assert "error log written:" in out
    assert "(WRITE_ERROR=2)" in out
