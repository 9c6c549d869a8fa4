from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator

from ..models.config_models import (
    DEFAULT_MAX_FILE_BYTES,
    DEFAULT_TABLE_NAME,
    DatabaseConfig,
    ImportConfig,
)

"""Loads ``config/import.yml`` into an ImportConfig.

The YAML is checked against ``config_schema.json`` (shipped inside this package,
unknown keys rejected) before any default is applied. Every violation is reported
in one ConfigError, each prefixed with its key path, e.g.
``config validation failed: database.port: 'x' is not of type 'integer', 'null'``.
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")
DEFAULT_ERROR_LOG_DIRECTORY = "./logs"


class ConfigError(Exception):
    pass


@lru_cache(maxsize=1)
def _schema_validator() -> Draft7Validator:
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    return Draft7Validator(schema)


def _validate_config_schema(data: dict[str, Any]) -> None:
    problems = []
    for err in sorted(_schema_validator().iter_errors(data), key=lambda e: list(e.path)):
        where = ".".join(str(p) for p in err.path)
        problems.append(f"{where}: {err.message}" if where else err.message)
    if problems:
        raise ConfigError("config validation failed: " + "; ".join(problems))


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if data is None:
        return {}  # 空ファイル = 全てデフォルト
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")
    return data


def _database_section(raw: dict[str, Any] | None) -> DatabaseConfig:
    raw = raw or {}
    return DatabaseConfig(**{k: raw.get(k) for k in ("host", "port", "user", "password", "database", "dsn")})


def load_config(path: Path) -> ImportConfig:
    """Read, validate and default the import configuration.

    Raises:
        ConfigError: missing file, invalid YAML, non-mapping root or schema violation
    """
    data = _read_yaml(path)
    _validate_config_schema(data)
    return ImportConfig(
        table_name=data.get("table_name", DEFAULT_TABLE_NAME),
        max_file_bytes=data.get("max_file_bytes", DEFAULT_MAX_FILE_BYTES),
        canonical_delimiter=data.get("canonical_delimiter", ";"),
        error_log_directory=data.get("error_log_directory", DEFAULT_ERROR_LOG_DIRECTORY),
        database=_database_section(data.get("database")),
    )
