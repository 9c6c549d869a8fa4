from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Field catalogue for registry rows.

The 12 recognized column headers are a closed enum; every header has exactly one
FieldRule in FIELD_RULES. The table is checked for completeness at import time so a
missing rule fails immediately instead of at validation time.
"""

__all__ = [
    "FieldName",
    "FieldType",
    "FieldRule",
    "FIELD_RULES",
    "EXPECTED_HEADERS",
    "KEY_FIELD",
]


class FieldName(str, Enum):
    """Recognized column headers (exact, case sensitive)."""
    PAGE = "Seite"
    FAMILY_NUMBER = "Familiennr"
    ENTRY_NUMBER = "Eintragsnr"
    RUNNING_NUMBER = "Laufendenr"
    FAMILY_NAME = "Familienname"
    GIVEN_NAME = "Vorname"
    PATRONYMIC = "Vatersname"
    FAMILY_ROLE = "Familienrolle"
    SEX = "Geschlecht"
    BIRTH_YEAR = "Geburtsjahr"
    BIRTHPLACE = "Geburtsort"
    WORKPLACE = "Arbeitsort"


class FieldType(Enum):
    TEXT = "text"
    INTEGER = "integer"
    YEAR = "year"


@dataclass(frozen=True)
class FieldRule:
    """Per-field contract applied by the validator."""
    required: bool
    type: FieldType
    max_length: int | None = None
    min_value: int | None = None
    max_value: int | None = None
    allowed_values: frozenset[str] | None = None


FAMILY_ROLES = frozenset({
    "Familienoberhaupt", "Vater", "Mutter", "Sohn", "Tochter", "Ehefrau",
    "Großvater", "Großmutter", "Enkel", "Enkelin", "Bruder", "Schwester",
    "Onkel", "Tante", "Neffe", "Nichte", "Schwiegervater", "Schwiegermutter",
    "Schwiegersohn", "Schwiegertochter", "unbekannt",
})

SEXES = frozenset({"männlich", "weiblich", "unbekannt"})

FIELD_RULES: dict[FieldName, FieldRule] = {
    FieldName.PAGE: FieldRule(required=False, type=FieldType.INTEGER, min_value=1),
    FieldName.FAMILY_NUMBER: FieldRule(required=False, type=FieldType.INTEGER, min_value=1),
    FieldName.ENTRY_NUMBER: FieldRule(required=False, type=FieldType.INTEGER, min_value=1),
    FieldName.RUNNING_NUMBER: FieldRule(required=True, type=FieldType.INTEGER, min_value=1),
    FieldName.FAMILY_NAME: FieldRule(required=False, type=FieldType.TEXT, max_length=255),
    FieldName.GIVEN_NAME: FieldRule(required=False, type=FieldType.TEXT, max_length=255),
    FieldName.PATRONYMIC: FieldRule(required=False, type=FieldType.TEXT, max_length=255),
    FieldName.FAMILY_ROLE: FieldRule(
        required=False, type=FieldType.TEXT, max_length=100, allowed_values=FAMILY_ROLES
    ),
    FieldName.SEX: FieldRule(required=False, type=FieldType.TEXT, allowed_values=SEXES),
    # Geburtsjahr 範囲外はスキーマ違反扱い
    FieldName.BIRTH_YEAR: FieldRule(
        required=False, type=FieldType.YEAR, min_value=1800, max_value=1950
    ),
    FieldName.BIRTHPLACE: FieldRule(required=False, type=FieldType.TEXT, max_length=255),
    FieldName.WORKPLACE: FieldRule(required=False, type=FieldType.TEXT, max_length=255),
}

_missing_rules = set(FieldName) - set(FIELD_RULES)
if _missing_rules:  # pragma: no cover
    raise RuntimeError(f"FIELD_RULES incomplete: {sorted(f.value for f in _missing_rules)}")

# Column order of the template and of decoded previews
EXPECTED_HEADERS: tuple[str, ...] = tuple(f.value for f in FieldName)

KEY_FIELD = FieldName.RUNNING_NUMBER
