from __future__ import annotations

import logging
from collections.abc import Sequence

from ..db.store import RecordStore
from ..models.fields import FIELD_RULES, KEY_FIELD, FieldName, FieldRule, FieldType
from ..models.row_data import RawRow, parse_int, parse_key, row_number
from ..models.validation import ValidationIssue, ValidationResult

"""Schema / business-rule validation of a decoded batch.

Pure apart from the optional existing-record lookup; never writes. All findings are
returned as ValidationIssue values, nothing is raised for bad data.

Severity policy:
- error: required blank, unparseable number, out of range, too long, duplicate
  running number inside the batch
- warning: value outside an enumeration, running number already stored
"""

__all__ = [
    "validate_field",
    "validate",
    "preflight_check",
]

logger = logging.getLogger(__name__)


def validate_field(
    field: FieldName, value: str, rule: FieldRule, row: int
) -> list[ValidationIssue]:
    """Apply one FieldRule to one trimmed cell value."""
    name = field.value
    issues: list[ValidationIssue] = []

    if value == "":
        if rule.required:
            issues.append(ValidationIssue.error(row, name, value, f"{name} is required"))
        return issues

    if rule.type in (FieldType.INTEGER, FieldType.YEAR):
        is_year = rule.type is FieldType.YEAR
        try:
            number = parse_int(value)
        except ValueError:
            kind = "year" if is_year else "number"
            issues.append(ValidationIssue.error(row, name, value, f"{name} must be a valid {kind}"))
        else:
            if rule.min_value is not None and number is not None and number < rule.min_value:
                msg = (
                    f"{name} must be {rule.min_value} or later"
                    if is_year
                    else f"{name} must be at least {rule.min_value}"
                )
                issues.append(ValidationIssue.error(row, name, value, msg))
            if rule.max_value is not None and number is not None and number > rule.max_value:
                msg = (
                    f"{name} must be {rule.max_value} or earlier"
                    if is_year
                    else f"{name} must be at most {rule.max_value}"
                )
                issues.append(ValidationIssue.error(row, name, value, msg))
    elif rule.max_length is not None and len(value) > rule.max_length:
        issues.append(
            ValidationIssue.error(
                row, name, value, f"{name} must be at most {rule.max_length} characters"
            )
        )

    if rule.allowed_values is not None and value not in rule.allowed_values:
        allowed = ", ".join(sorted(rule.allowed_values))
        issues.append(ValidationIssue.warning(row, name, value, f"{name} must be one of: {allowed}"))

    return issues


def _group_by_key(rows: Sequence[RawRow]) -> dict[int, list[int]]:
    """Running number -> line numbers of the rows carrying it (row order)."""
    groups: dict[int, list[int]] = {}
    for index, row in enumerate(rows):
        key = parse_key(row)
        if key is not None:
            groups.setdefault(key, []).append(row_number(index))
    return groups


def _existing_record_warnings(
    groups: dict[int, list[int]], store: RecordStore
) -> list[ValidationIssue]:
    name = KEY_FIELD.value
    warnings: list[ValidationIssue] = []
    for key, line_numbers in groups.items():
        try:
            existing = store.find_current_by_logical_key(key)
        except Exception as e:
            logger.warning("existing-record check failed for %s %d: %s", name, key, e)
            for line in line_numbers:
                warnings.append(
                    ValidationIssue.warning(
                        line, name, str(key), f"Could not check existing record for {name} {key}: {e}"
                    )
                )
            continue
        if existing is None:
            continue
        for line in line_numbers:
            warnings.append(
                ValidationIssue.warning(
                    line,
                    name,
                    str(key),
                    f"Record with {name} {key} already exists "
                    f"({existing.family_name}, {existing.given_name})",
                )
            )
    return warnings


def validate(
    headers: Sequence[str], rows: Sequence[RawRow], store: RecordStore | None = None
) -> ValidationResult:
    """Validate a decoded batch.

    Parameters
    ----------
    headers: decoded header list (extra headers are ignored here)
    rows: decoded rows
    store: when given, rows whose running number already has a current version
        receive one warning each

    Returns
    -------
    ValidationResult; ``valid_rows`` counts rows without any error
    """
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    error_rows: set[int] = set()

    for index, row in enumerate(rows):
        line = row_number(index)
        for field, rule in FIELD_RULES.items():
            value = (row.get(field.value) or "").strip()
            for issue in validate_field(field, value, rule, line):
                if issue.is_error:
                    errors.append(issue)
                    error_rows.add(line)
                else:
                    warnings.append(issue)

    groups = _group_by_key(rows)
    key_name = KEY_FIELD.value
    for key, line_numbers in groups.items():
        if len(line_numbers) < 2:
            continue
        cited = ", ".join(str(n) for n in line_numbers)
        for line in line_numbers:
            errors.append(
                ValidationIssue.error(
                    line, key_name, str(key), f"Duplicate {key_name} {key} found in rows: {cited}"
                )
            )
            error_rows.add(line)

    if store is not None:
        warnings.extend(_existing_record_warnings(groups, store))

    total = len(rows)
    result = ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        valid_rows=total - len(error_rows),
        total_rows=total,
    )
    logger.info(
        "validated rows=%d valid=%d errors=%d warnings=%d",
        total,
        result.valid_rows,
        len(errors),
        len(warnings),
    )
    return result


def preflight_check(rows: Sequence[RawRow]) -> tuple[bool, list[str]]:
    """Quick pre-import check: missing and duplicate running numbers only.

    Returns (is_valid, human-readable messages).
    """
    key_name = KEY_FIELD.value
    messages: list[str] = []
    if not rows:
        return False, ["No data to import"]

    missing = [
        str(row_number(i)) for i, row in enumerate(rows) if not (row.get(key_name) or "").strip()
    ]
    if missing:
        messages.append(f"Rows missing {key_name}: {', '.join(missing)}")

    # 生文字列 (trim 後) 単位で重複判定
    seen: dict[str, list[int]] = {}
    for i, row in enumerate(rows):
        raw = (row.get(key_name) or "").strip()
        if raw:
            seen.setdefault(raw, []).append(row_number(i))
    for raw, lines in seen.items():
        if len(lines) > 1:
            messages.append(
                f"Duplicate {key_name} {raw} in rows: {', '.join(str(n) for n in lines)}"
            )
    return not messages, messages
