from __future__ import annotations

from pathlib import Path

from deport_import.cli import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL
from deport_import.cli import main as cli_main
from deport_import.db.store import InMemoryRecordStore, StoreError
from deport_import.logging.init import reset_logging

"""Exit code contract: 0 success, 1 fatal, 2 validation or row-level write errors."""

VALID = "1;1;1;1001;Meier;Hans;Karl;Vater;männlich;1890;Dorpat;"


def test_exit_code_constants():
    assert (EXIT_SUCCESS_ALL, EXIT_FATAL, EXIT_PARTIAL_FAILURE) == (0, 1, 2)


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # config/import.yml 無し → exit 1
    reset_logging()
    code = cli_main(["validate", "data/x.csv"])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_all_success(write_config, write_csv, capsys):
    reset_logging()
    path = write_csv("ok.csv", [VALID])
    code = cli_main(["import", str(path), "--actor", "alice"], store=InMemoryRecordStore())
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY rows=1 imported=1 skipped=0 errors=0" in out


def test_exit_code_validation_errors(write_config, write_csv, capsys):
    reset_logging()
    path = write_csv("bad.csv", [VALID.replace("1890", "1700")])
    assert cli_main(["import", str(path), "--actor", "alice"], store=InMemoryRecordStore()) == 2


def test_exit_code_partial_write_failure(write_config, write_csv, capsys):
    reset_logging()
    store = InMemoryRecordStore()
    real_insert = store.insert_new_current_version

    def insert(rec):
        if rec.running_number == 1002:
            raise StoreError("deadlock detected")
        return real_insert(rec)

    store.insert_new_current_version = insert  # type: ignore[method-assign]
    path = write_csv("mixed.csv", [VALID, VALID.replace("1001", "1002")])
    code = cli_main(["import", str(path), "--actor", "alice"], store=store)
    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY rows=2 imported=1 skipped=0 errors=1" in out
    assert "ERROR row 3 general: Import error: deadlock detected" in out


def test_exit_code_decode_failure(write_config, write_csv, capsys):
    reset_logging()
    path = write_csv("empty.csv", [])
    assert cli_main(["import", str(path), "--actor", "alice"], store=InMemoryRecordStore()) == 1
