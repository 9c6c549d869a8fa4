from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the registry importer.

Populated by deport_import.config.loader from config/import.yml.
Environment variables take precedence over the database section at connect time.
"""

DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_TABLE_NAME = "deport"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for the import process."""
    table_name: str = DEFAULT_TABLE_NAME  # 対象テーブル
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    canonical_delimiter: str = ";"  # テンプレート出力用
    error_log_directory: str = "./logs"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
