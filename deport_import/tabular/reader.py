from __future__ import annotations

import io
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any

import pandas as pd

from ..models.config_models import DEFAULT_MAX_FILE_BYTES
from ..models.fields import EXPECTED_HEADERS
from ..models.row_data import DecodedTable, RawRow, make_row

"""Tabular decoder: raw file bytes -> headers + rows of strings.

Delimited text (.csv/.txt/.tsv):
- 先頭の非空行をヘッダ行とし、候補区切り文字 ; , | TAB を順に試行
- 既知ヘッダ名との完全一致数が最大のものを採用 (同数は先勝ち)
- confidence = matches / 12 * 100; 50 未満は曖昧として失敗

Spreadsheets (.xlsx/.xls): first sheet only, read with pandas, every cell rendered
as a string. Delimiter detection is skipped.
"""

__all__ = [
    "DecodeError",
    "AmbiguousDelimiterError",
    "MissingHeadersError",
    "DelimiterDetection",
    "SUPPORTED_DELIMITERS",
    "split_line",
    "detect_delimiter",
    "detect_delimiter_from_content",
    "check_file",
    "is_spreadsheet",
    "list_sheet_names",
    "decode_text",
    "decode",
]

logger = logging.getLogger(__name__)

SUPPORTED_DELIMITERS: tuple[tuple[str, str], ...] = (
    (";", "Semikolon (;)"),
    (",", "Komma (,)"),
    ("|", "Pipe (|)"),
    ("\t", "Tabulator"),
)
MIN_CONFIDENCE = 50
SPREADSHEET_SUFFIXES = frozenset({".xlsx", ".xls"})
TEXT_SUFFIXES = frozenset({".csv", ".txt", ".tsv"})
QUOTE = '"'


class DecodeError(Exception):
    """Fatal, whole-file decoding failure. Nothing of the file is imported."""


class AmbiguousDelimiterError(DecodeError):
    """Raised when no candidate delimiter reaches the minimum confidence."""


class MissingHeadersError(DecodeError):
    """Raised when required headers are absent from the header row."""


@dataclass(frozen=True)
class DelimiterDetection:
    delimiter: str
    name: str
    confidence: int  # 0-100
    match_count: int


def split_line(line: str, delimiter: str) -> list[str]:
    """Split one line on ``delimiter`` honoring double quotes.

    A quote toggles the in-quote state; ``""`` inside quotes is a literal quote.
    Delimiters inside quotes are literal. Every field is trimmed.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == QUOTE:
            if in_quotes and i + 1 < n and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current).strip())
    return fields


def _count_header_matches(fields: Iterable[str]) -> int:
    expected = set(EXPECTED_HEADERS)
    return sum(1 for f in fields if f.strip() in expected)


def _confidence(match_count: int) -> int:
    return round(match_count / len(EXPECTED_HEADERS) * 100)


def detect_delimiter(header_line: str) -> DelimiterDetection:
    """Pick the candidate delimiter yielding the most exact header matches."""
    best_char, best_name = SUPPORTED_DELIMITERS[0]
    best_score = 0
    for char, name in SUPPORTED_DELIMITERS:
        score = _count_header_matches(split_line(header_line, char))
        # 同点は先に試した候補を優先
        if score > best_score:
            best_char, best_name, best_score = char, name, score
    return DelimiterDetection(
        delimiter=best_char,
        name=best_name,
        confidence=_confidence(best_score),
        match_count=best_score,
    )


def _non_blank_lines(text: str) -> list[str]:
    return [line for line in text.splitlines() if line.strip()]


def detect_delimiter_from_content(text: str) -> DelimiterDetection:
    """Preview delimiter detection on file content without decoding rows.

    Unlike ``decode`` this does not fail on low confidence; callers can show the
    result before the user commits to an upload.
    """
    if not text or not text.strip():
        raise DecodeError("content is empty")
    return detect_delimiter(_non_blank_lines(text)[0])


def is_spreadsheet(filename: str) -> bool:
    return PurePath(filename).suffix.lower() in SPREADSHEET_SUFFIXES


def check_file(filename: str, size: int, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> None:
    """Gate a file by extension and size before reading it.

    Raises:
        DecodeError: unsupported extension, empty file or file above ``max_bytes``
    """
    suffix = PurePath(filename).suffix.lower()
    if suffix not in TEXT_SUFFIXES | SPREADSHEET_SUFFIXES:
        raise DecodeError(
            f"unsupported file type '{suffix or filename}': expected .csv, .txt, .tsv, .xlsx or .xls"
        )
    if size == 0:
        raise DecodeError("file is empty")
    if size > max_bytes:
        raise DecodeError(f"file too large: {size} bytes (limit {max_bytes})")


def _validate_headers(headers: Sequence[str]) -> list[str]:
    """Check that all expected headers are present; return non-fatal warnings."""
    present = set(headers)
    missing = [h for h in EXPECTED_HEADERS if h not in present]
    if missing:
        raise MissingHeadersError(f"missing required headers: {', '.join(missing)}")
    unexpected = [h for h in headers if h and h not in EXPECTED_HEADERS]
    warnings: list[str] = []
    if unexpected:
        msg = f"unexpected headers ignored: {', '.join(unexpected)}"
        logger.warning(msg)
        warnings.append(msg)
    return warnings


def _build_rows(
    headers: Sequence[str], records: Iterable[tuple[int, Sequence[str]]]
) -> list[RawRow]:
    """Zip split records against headers, dropping all-blank records.

    ``records`` yields (line number, values) pairs; the line number is only used in
    error messages.
    """
    rows: list[RawRow] = []
    width = len(headers)
    for line_no, values in records:
        if all(v.strip() == "" for v in values):
            continue
        overflow = [v for v in values[width:] if v.strip() != ""]
        if overflow:
            raise DecodeError(
                f"line {line_no}: {len(values)} fields but only {width} headers"
            )
        rows.append(make_row(headers, values))
    return rows


def decode_text(text: str) -> DecodedTable:
    """Decode delimited text content (already a str)."""
    if not text or not text.strip():
        raise DecodeError("file is empty")

    numbered = [(no, line) for no, line in enumerate(text.splitlines(), start=1) if line.strip()]
    header_no, header_line = numbered[0]
    detection = detect_delimiter(header_line)
    logger.debug(
        "delimiter=%r confidence=%d matches=%d",
        detection.delimiter,
        detection.confidence,
        detection.match_count,
    )
    if detection.confidence < MIN_CONFIDENCE:
        raise AmbiguousDelimiterError(
            f"could not determine the delimiter (confidence {detection.confidence}%); "
            "use semicolon, comma, pipe or tab and the expected column headers"
        )

    headers = split_line(header_line, detection.delimiter)
    warnings = _validate_headers(headers)
    rows = _build_rows(
        headers,
        ((no, split_line(line, detection.delimiter)) for no, line in numbered[1:]),
    )
    if not rows:
        raise DecodeError("file contains no data rows")
    return DecodedTable(
        headers=headers,
        rows=rows,
        total_rows=len(rows),
        delimiter=detection.delimiter,
        confidence=detection.confidence,
        warnings=warnings,
    )


def _cell_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):  # pragma: no cover - non-scalar cell
        pass
    # Excel は整数も float で返すため 1900.0 -> "1900"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _open_workbook(file_bytes: bytes) -> pd.ExcelFile:
    try:
        return pd.ExcelFile(io.BytesIO(file_bytes))
    except Exception as e:
        raise DecodeError(f"spreadsheet is damaged or not a supported format: {e}") from e


def list_sheet_names(file_bytes: bytes) -> tuple[list[str], str]:
    """Return (all sheet names, selected sheet). The first sheet is always selected."""
    if not file_bytes:
        raise DecodeError("file is empty")
    xls = _open_workbook(file_bytes)
    names = [str(n) for n in xls.sheet_names]
    if not names:
        raise DecodeError("workbook contains no sheets")
    return names, names[0]


def read_first_sheet(file_bytes: bytes) -> list[list[str]]:
    """Read the first sheet of a workbook as a list of string rows."""
    xls = _open_workbook(file_bytes)
    if not xls.sheet_names:
        raise DecodeError("workbook contains no sheets")
    sheet = xls.sheet_names[0]
    if len(xls.sheet_names) > 1:
        logger.info(
            "workbook has %d sheets; using the first one '%s'", len(xls.sheet_names), sheet
        )
    try:
        df = xls.parse(sheet, header=None, dtype=object, keep_default_na=False)
    except Exception as e:
        raise DecodeError(f"could not read sheet '{sheet}': {e}") from e
    return [[_cell_to_str(v) for v in raw] for raw in df.itertuples(index=False, name=None)]


def _decode_spreadsheet(file_bytes: bytes) -> DecodedTable:
    records = [
        (no, values) for no, values in enumerate(read_first_sheet(file_bytes), start=1)
        if any(v != "" for v in values)
    ]
    if not records:
        raise DecodeError("sheet is empty")
    _, header_values = records[0]
    # 末尾の空ヘッダ列 (書式だけのセル) は除去
    headers = list(header_values)
    while headers and headers[-1] == "":
        headers.pop()
    warnings = _validate_headers(headers)
    rows = _build_rows(headers, records[1:])
    if not rows:
        raise DecodeError("file contains no data rows")
    return DecodedTable(
        headers=headers,
        rows=rows,
        total_rows=len(rows),
        delimiter=None,
        confidence=_confidence(_count_header_matches(headers)),
        warnings=warnings,
    )


def decode(
    file_bytes: bytes, filename: str, max_bytes: int = DEFAULT_MAX_FILE_BYTES
) -> DecodedTable:
    """Decode an uploaded file into headers and rows.

    Parameters
    ----------
    file_bytes: raw file content (fits in memory, at most ``max_bytes``)
    filename: original file name; its extension selects text vs. spreadsheet reading
    max_bytes: size cap

    Raises
    ------
    DecodeError: empty/oversized/undecodable file, ambiguous delimiter, missing
        headers, row wider than the header, or no data rows
    """
    if not file_bytes:
        raise DecodeError("file is empty")
    if len(file_bytes) > max_bytes:
        raise DecodeError(f"file too large: {len(file_bytes)} bytes (limit {max_bytes})")

    if is_spreadsheet(filename):
        table = _decode_spreadsheet(file_bytes)
    else:
        try:
            text = file_bytes.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DecodeError(f"file is not valid UTF-8: {e}") from e
        table = decode_text(text)

    logger.info(
        "decoded %s rows=%d delimiter=%r confidence=%d%%",
        filename,
        table.total_rows,
        table.delimiter,
        table.confidence,
    )
    return table
