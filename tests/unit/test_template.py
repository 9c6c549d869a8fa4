from __future__ import annotations

from deport_import.models.fields import EXPECTED_HEADERS
from deport_import.services.template import (
    generate_field_docs,
    generate_minimal_template,
    generate_template,
    validate_template_format,
)
from deport_import.services.validator import validate
from deport_import.tabular.reader import decode_text


def test_generate_template_header_and_three_examples():
    lines = generate_template().split("\n")
    assert len(lines) == 4
    assert lines[0] == ";".join(EXPECTED_HEADERS)
    assert all(len(line.split(";")) == 12 for line in lines)


def test_generated_template_passes_validation():
    table = decode_text(generate_template())
    assert table.total_rows == 3
    result = validate(table.headers, table.rows)
    assert result.is_valid
    assert result.warnings == []
    assert result.valid_rows == 3


def test_generate_template_with_other_delimiter():
    table = decode_text(generate_template("|"))
    assert table.delimiter == "|"
    assert table.rows[2]["Arbeitsort"] == "Lehrling"


def test_minimal_template_is_valid():
    table = decode_text(generate_minimal_template())
    assert table.total_rows == 1
    assert validate(table.headers, table.rows).is_valid


def test_field_docs_list_every_field_and_rule():
    docs = generate_field_docs()
    for header in EXPECTED_HEADERS:
        assert f"### {header}" in docs
    assert "- Erforderlich: Ja" in docs
    assert "- Minimalwert: 1800" in docs
    assert "- Maximalwert: 1950" in docs
    assert "- Maximale Länge: 100 Zeichen" in docs
    assert "männlich, unbekannt, weiblich" in docs


def test_validate_template_format_ok():
    assert validate_template_format(generate_template()) == (True, [])


def test_validate_template_format_empty():
    assert validate_template_format("\n  \n") == (False, ["Template ist leer"])


def test_validate_template_format_reports_problems():
    content = "Seite;Laufendenr\n1;2\n1;2;3\n"
    ok, errors = validate_template_format(content)
    assert not ok
    assert errors[0].startswith("Fehlende Header: Familiennr, Eintragsnr")
    assert errors[1:] == ["Zeile 3: Anzahl der Spalten stimmt nicht überein"]
