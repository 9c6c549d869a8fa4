from __future__ import annotations

import pytest

from deport_import.models.person_record import PersonPayload, PersonRecord
from deport_import.models.row_data import make_row, parse_int, parse_key, row_number


def test_make_row_pads_missing_values_and_is_read_only():
    row = make_row(["a", "b", "c"], ["1"])
    assert dict(row) == {"a": "1", "b": "", "c": ""}
    with pytest.raises(TypeError):
        row["a"] = "2"  # type: ignore[index]


def test_row_number_counts_header_line():
    assert row_number(0) == 2
    assert row_number(9) == 11


@pytest.mark.parametrize(
    "value,expected",
    [(None, None), ("", None), ("  ", None), ("42", 42), (" 7 ", 7), ("+3", 3), ("-1", -1), ("007", 7)],
)
def test_parse_int_accepts(value, expected):
    assert parse_int(value) == expected


@pytest.mark.parametrize("value", ["1.0", "12abc", "abc", "1 2", "1e3"])
def test_parse_int_rejects(value):
    with pytest.raises(ValueError):
        parse_int(value)


def test_parse_key(raw_row):
    assert parse_key(raw_row(Laufendenr="12")) == 12
    assert parse_key(raw_row(Laufendenr="x")) is None
    assert parse_key(raw_row()) is None


def test_payload_from_row(raw_row):
    payload = PersonPayload.from_row(
        raw_row(Laufendenr="5", Seite="2", Familienname=" Meier ", Vorname="", Geburtsjahr="1890")
    )
    assert payload.running_number == 5
    assert payload.page == 2
    assert payload.family_name == "Meier"
    assert payload.given_name is None
    assert payload.birth_year == 1890


def test_payload_from_row_invalid_key(raw_row):
    with pytest.raises(ValueError) as e:
        PersonPayload.from_row(raw_row(Laufendenr=""))
    assert str(e.value) == "Invalid Laufendenr"


def test_record_payload_round_trip():
    payload = PersonPayload(running_number=3, family_name="Meier", sex="weiblich")
    rec = PersonRecord.from_payload(payload, valid_from=None, updated_by="alice")
    assert rec.is_current
    assert rec.updated_by == "alice"
    assert rec.payload == payload
