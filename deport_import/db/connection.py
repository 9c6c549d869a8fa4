from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..models.config_models import ImportConfig

"""psycopg2 connection helper.

接続情報の解決優先順位:
    1. `.env` で読み込まれた環境変数 (CLI 起動時に override=True で読み込み済み)
    2. 既存の環境変数 DATABASE_URL / PGDSN, または個別 PGHOST / PGPORT / PGUSER /
       PGPASSWORD / PGDATABASE
    3. config/import.yml の database セクション (不足分のフォールバック)
"""


def resolve_dsn(cfg: ImportConfig) -> str:
    db_cfg = cfg.database
    dsn_env = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn_env:
        return dsn_env
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a psycopg2 connection with explicit transaction control."""
    conn = psycopg2.connect(resolve_dsn(cfg))
    conn.autocommit = False
    try:
        yield conn
    finally:
        conn.close()
