# Shared pytest fixtures
from __future__ import annotations

import tempfile
from datetime import UTC, datetime
from pathlib import Path

import pytest

from deport_import.models.fields import EXPECTED_HEADERS
from deport_import.models.person_record import PersonRecord
from deport_import.models.row_data import make_row

HEADER_LINE = ";".join(EXPECTED_HEADERS)


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """table_name: deport
max_file_bytes: 10485760
canonical_delimiter: ";"
error_log_directory: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def write_csv(temp_workdir: Path):
    """Write ``lines`` (header line prepended unless given) to data/<name>."""
    def _write(name: str, lines: list[str], *, header: str | None = HEADER_LINE) -> Path:
        path = temp_workdir / "data" / name
        body = ([header] if header is not None else []) + lines
        path.write_text("\n".join(body) + "\n", encoding="utf-8")
        return path
    return _write


def _raw_row(**overrides: str):
    values = {h: "" for h in EXPECTED_HEADERS}
    values.update(overrides)
    return make_row(list(EXPECTED_HEADERS), [values[h] for h in EXPECTED_HEADERS])


def _record(key: int, family_name: str = "Schmidt", given_name: str = "Anna", **kw) -> PersonRecord:
    kw.setdefault("valid_from", datetime(2024, 1, 1, tzinfo=UTC))
    kw.setdefault("updated_by", "seed")
    return PersonRecord(
        running_number=key,
        family_name=family_name,
        given_name=given_name,
        id=kw.pop("id", f"seed-{key}"),
        **kw,
    )


@pytest.fixture()
def raw_row():
    """Factory: RawRow with every header blank except the given German field names.

    Usage: ``raw_row(Laufendenr="1", Familienname="Meier")``
    """
    return _raw_row


@pytest.fixture()
def record():
    """Factory: stored current PersonRecord for a running number."""
    return _record
