from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any

from .fields import FieldName
from .row_data import RawRow, parse_int

"""PersonPayload / PersonRecord models.

PersonPayload holds the 12 domain fields of one registry entry. PersonRecord is the
persisted, historized version of a payload: storage id plus bitemporal metadata.
For one running number at most one PersonRecord has ``valid_to is None``.
"""

__all__ = [
    "PersonPayload",
    "PersonRecord",
    "FIELD_ATTRIBUTES",
]

# FieldName -> attribute name on PersonPayload / PersonRecord
FIELD_ATTRIBUTES: dict[FieldName, str] = {
    FieldName.PAGE: "page",
    FieldName.FAMILY_NUMBER: "family_number",
    FieldName.ENTRY_NUMBER: "entry_number",
    FieldName.RUNNING_NUMBER: "running_number",
    FieldName.FAMILY_NAME: "family_name",
    FieldName.GIVEN_NAME: "given_name",
    FieldName.PATRONYMIC: "patronymic",
    FieldName.FAMILY_ROLE: "family_role",
    FieldName.SEX: "sex",
    FieldName.BIRTH_YEAR: "birth_year",
    FieldName.BIRTHPLACE: "birthplace",
    FieldName.WORKPLACE: "workplace",
}


def _text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True)
class PersonPayload:
    """Structured, write-side form of a RawRow (blank cells -> None)."""
    running_number: int
    page: int | None = None
    family_number: int | None = None
    entry_number: int | None = None
    family_name: str | None = None
    given_name: str | None = None
    patronymic: str | None = None
    family_role: str | None = None
    sex: str | None = None
    birth_year: int | None = None
    birthplace: str | None = None
    workplace: str | None = None

    @classmethod
    def from_row(cls, row: RawRow) -> PersonPayload:
        """Parse a decoded row.

        Raises:
            ValueError: running number blank/unparseable or a numeric cell unparseable
        """
        key = parse_int(row.get(FieldName.RUNNING_NUMBER.value))
        if key is None:
            raise ValueError("Invalid Laufendenr")
        return cls(
            running_number=key,
            page=parse_int(row.get(FieldName.PAGE.value)),
            family_number=parse_int(row.get(FieldName.FAMILY_NUMBER.value)),
            entry_number=parse_int(row.get(FieldName.ENTRY_NUMBER.value)),
            family_name=_text(row.get(FieldName.FAMILY_NAME.value)),
            given_name=_text(row.get(FieldName.GIVEN_NAME.value)),
            patronymic=_text(row.get(FieldName.PATRONYMIC.value)),
            family_role=_text(row.get(FieldName.FAMILY_ROLE.value)),
            sex=_text(row.get(FieldName.SEX.value)),
            birth_year=parse_int(row.get(FieldName.BIRTH_YEAR.value)),
            birthplace=_text(row.get(FieldName.BIRTHPLACE.value)),
            workplace=_text(row.get(FieldName.WORKPLACE.value)),
        )

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class PersonRecord:
    """One version of a person in the historized store."""
    running_number: int  # 論理 ID (業務キー)
    page: int | None = None
    family_number: int | None = None
    entry_number: int | None = None
    family_name: str | None = None
    given_name: str | None = None
    patronymic: str | None = None
    family_role: str | None = None
    sex: str | None = None
    birth_year: int | None = None
    birthplace: str | None = None
    workplace: str | None = None
    id: str | None = None  # storage id, assigned by the store
    valid_from: datetime | None = None
    valid_to: datetime | None = None  # None = current version
    updated_by: str | None = None

    @property
    def is_current(self) -> bool:
        return self.valid_to is None

    @property
    def payload(self) -> PersonPayload:
        return PersonPayload(**{name: getattr(self, name) for name in FIELD_ATTRIBUTES.values()})

    @classmethod
    def from_payload(
        cls, payload: PersonPayload, *, valid_from: datetime | None, updated_by: str | None
    ) -> PersonRecord:
        return cls(**payload.as_dict(), valid_from=valid_from, valid_to=None, updated_by=updated_by)
