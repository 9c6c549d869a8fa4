"""Domain models for the deportation registry importer.

This package contains the value types passed between decoder, validator,
conflict detector and executor.
"""

from .config_models import DatabaseConfig, ImportConfig
from .conflict import ConflictAction, DuplicateConflict, ExistingRecordSummary
from .error_record import ErrorRecord, ErrorType
from .fields import EXPECTED_HEADERS, FIELD_RULES, KEY_FIELD, FieldName, FieldRule, FieldType
from .import_outcome import ImportOutcome, ImportSummary
from .person_record import PersonPayload, PersonRecord
from .row_data import DecodedTable, RawRow
from .validation import Severity, ValidationIssue, ValidationResult

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    # Field catalogue
    "FieldName",
    "FieldRule",
    "FieldType",
    "FIELD_RULES",
    "EXPECTED_HEADERS",
    "KEY_FIELD",
    # Pipeline models
    "RawRow",
    "DecodedTable",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "ConflictAction",
    "DuplicateConflict",
    "ExistingRecordSummary",
    "ImportOutcome",
    "ImportSummary",
    "PersonPayload",
    "PersonRecord",
    "ErrorRecord",
    "ErrorType",
]
