from __future__ import annotations

import re

from ..models.fields import EXPECTED_HEADERS, FIELD_RULES, FieldType

"""Import template and field documentation generator.

Pure functions; the CLI writes their output to
``deportierte_personen_template.csv`` and ``CSV_Import_Anleitung.txt``.
The example rows satisfy every field rule.
"""

__all__ = [
    "TEMPLATE_FILE_NAME",
    "DOCS_FILE_NAME",
    "generate_template",
    "generate_minimal_template",
    "generate_field_docs",
    "validate_template_format",
]

TEMPLATE_FILE_NAME = "deportierte_personen_template.csv"
DOCS_FILE_NAME = "CSV_Import_Anleitung.txt"

# 列順 = EXPECTED_HEADERS
EXAMPLE_ROWS: tuple[tuple[str, ...], ...] = (
    ("1", "1", "1", "1", "Mustermann", "Max", "Johann", "Vater", "männlich", "1900", "Berlin", "Hamburg"),
    ("1", "1", "2", "2", "Mustermann", "Anna", "", "Mutter", "weiblich", "1905", "München", ""),
    ("1", "1", "3", "3", "Mustermann", "Peter", "Max", "Sohn", "männlich", "1925", "Berlin", "Lehrling"),
)

MINIMAL_ROW: tuple[str, ...] = (
    "1", "1", "1", "1", "Mustermann", "Max", "", "Vater", "männlich", "1900", "Berlin", "",
)

_TYPE_LABELS = {
    FieldType.TEXT: "Text",
    FieldType.INTEGER: "Zahl",
    FieldType.YEAR: "Jahr (Zahl)",
}


def generate_template(delimiter: str = ";") -> str:
    """Header line plus three example rows."""
    lines = [delimiter.join(EXPECTED_HEADERS)]
    lines.extend(delimiter.join(row) for row in EXAMPLE_ROWS)
    return "\n".join(lines)


def generate_minimal_template(delimiter: str = ";") -> str:
    return f"{delimiter.join(EXPECTED_HEADERS)}\n{delimiter.join(MINIMAL_ROW)}"


def generate_field_docs() -> str:
    """Human-readable (German) listing of every field rule."""
    docs = [
        "# CSV Import Template für Deportierte Personen",
        "",
        "## Dateiformat:",
        "- Encoding: UTF-8",
        "- Separator: Semikolon (;), Tabulator, Pipe (|) oder Komma (,)",
        '- Textqualifizierer: Anführungszeichen (") bei Bedarf',
        "",
        "## Felderbeschreibung:",
        "",
    ]
    for field, rule in FIELD_RULES.items():
        docs.append(f"### {field.value}")
        docs.append(f"- Erforderlich: {'Ja' if rule.required else 'Nein'}")
        docs.append(f"- Typ: {_TYPE_LABELS[rule.type]}")
        if rule.max_length is not None:
            docs.append(f"- Maximale Länge: {rule.max_length} Zeichen")
        if rule.min_value is not None:
            docs.append(f"- Minimalwert: {rule.min_value}")
        if rule.max_value is not None:
            docs.append(f"- Maximalwert: {rule.max_value}")
        if rule.allowed_values is not None:
            docs.append(f"- Erlaubte Werte: {', '.join(sorted(rule.allowed_values))}")
        docs.append("")
    docs.extend([
        "## Beispiele:",
        "",
        "Siehe CSV-Datei für Beispieldaten.",
        "",
        "## Hinweise:",
        "- Leere Felder sind für optionale Felder erlaubt",
        "- Laufendenr muss eindeutig sein (sowohl in der CSV als auch in der Datenbank)",
        "- Bei Konflikten mit bestehenden Datensätzen werden Optionen zur Auflösung angeboten",
        "- Familiennr sollte für Familienmitglieder gleich sein",
        "- Geburtsjahr sollte realistisch sein (1800-1950)",
    ])
    return "\n".join(docs)


def validate_template_format(content: str, delimiter: str = ";") -> tuple[bool, list[str]]:
    """Check a semicolon template: all headers present, first three data rows
    have as many columns as the header.
    """
    errors: list[str] = []
    lines = [line for line in re.split(r"\r?\n", content) if line.strip()]
    if not lines:
        return False, ["Template ist leer"]

    headers = [h.strip() for h in lines[0].split(delimiter)]
    missing = [h for h in EXPECTED_HEADERS if h not in headers]
    if missing:
        errors.append(f"Fehlende Header: {', '.join(missing)}")

    for i in range(1, min(len(lines), 4)):
        if len(lines[i].split(delimiter)) != len(headers):
            errors.append(f"Zeile {i + 1}: Anzahl der Spalten stimmt nicht überein")

    return not errors, errors
