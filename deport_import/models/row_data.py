from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from .fields import KEY_FIELD

"""RawRow / DecodedTable models.

A RawRow is the read-only mapping header -> raw cell string produced by the decoder.
Header insertion order is preserved (column order for previews and templates).
"""

__all__ = [
    "RawRow",
    "DecodedTable",
    "make_row",
    "row_number",
    "parse_int",
    "parse_key",
]

RawRow = Mapping[str, str]

# ヘッダ行 = 1 行目, データ 1 行目 = 2 行目
FIRST_DATA_LINE = 2

_INT_RE = re.compile(r"[+-]?[0-9]+")


def make_row(headers: Sequence[str], values: Sequence[str]) -> RawRow:
    """Zip values against headers; missing trailing values become ""."""
    data: dict[str, str] = {}
    for index, header in enumerate(headers):
        data[header] = values[index] if index < len(values) else ""
    return MappingProxyType(data)


def row_number(index: int) -> int:
    """1-based line number of the data row at list position ``index``."""
    return index + FIRST_DATA_LINE


def parse_int(value: str | None) -> int | None:
    """Parse a trimmed integer cell. Blank -> None; garbage raises ValueError."""
    if value is None:
        return None
    stripped = value.strip()
    if stripped == "":
        return None
    if not _INT_RE.fullmatch(stripped):
        raise ValueError(f"invalid integer: {value!r}")
    return int(stripped)


def parse_key(row: RawRow) -> int | None:
    """Running number of a row, or None when blank or unparseable."""
    try:
        return parse_int(row.get(KEY_FIELD.value))
    except ValueError:
        return None


@dataclass(frozen=True)
class DecodedTable:
    """Decoder output for one file (one batch)."""
    headers: list[str]
    rows: list[RawRow]
    total_rows: int
    delimiter: str | None  # None = spreadsheet (区切り文字検出なし)
    confidence: int  # 0-100, matched headers / 12
    warnings: list[str] = field(default_factory=list)
