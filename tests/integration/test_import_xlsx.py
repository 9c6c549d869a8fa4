from __future__ import annotations

from pathlib import Path

import pandas as pd

from deport_import.cli import main as cli_main
from deport_import.db.store import InMemoryRecordStore
from deport_import.logging.init import reset_logging
from deport_import.models.fields import EXPECTED_HEADERS


def _workbook(path: Path) -> None:
    people = pd.DataFrame(
        [
            [7, 2, 1, 2001, "Becker", "Emma", "Friedrich", "Mutter", "weiblich", 1902, "Engels", ""],
            [7, 2, 2, 2002, "Becker", "Otto", "", "Sohn", "männlich", 1925, "Engels", "Sägewerk"],
        ],
        columns=list(EXPECTED_HEADERS),
    )
    notes = pd.DataFrame({"Notiz": ["wird ignoriert"]})
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        people.to_excel(writer, sheet_name="Personen", index=False)
        notes.to_excel(writer, sheet_name="Notizen", index=False)


def test_import_xlsx_first_sheet(write_config, temp_workdir: Path, capsys):
    reset_logging()
    src = temp_workdir / "data" / "liste.xlsx"
    _workbook(src)
    store = InMemoryRecordStore()

    code = cli_main(["import", str(src), "--actor", "alice"], store=store)
    out = capsys.readouterr().out

    assert code == 0
    assert "using the first one 'Personen'" in out
    assert "SUMMARY rows=2 imported=2 skipped=0 errors=0" in out
    emma = store.find_current_by_logical_key(2001)
    assert (emma.family_name, emma.given_name, emma.birth_year) == ("Becker", "Emma", 1902)
    assert emma.page == 7
    assert emma.workplace is None
    otto = store.find_current_by_logical_key(2002)
    assert otto.workplace == "Sägewerk"
