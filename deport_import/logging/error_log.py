from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord, ErrorType

"""Per-run error log.

Records from decoding, validation and the executor are collected during a run and
written as JSON Lines to ``<directory>/errors-YYYYMMDD-HHMMSS.log`` (UTC stamp of
the first flush). A run without errors leaves no file behind.
"""

__all__ = [
    "ErrorRecord",
    "ErrorType",
    "ErrorLogBuffer",
]

DEFAULT_LOG_DIRECTORY = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """Collects ErrorRecords of one run; not shared between threads."""

    def __init__(self, directory: Path | None = None) -> None:
        self._directory = directory if directory is not None else DEFAULT_LOG_DIRECTORY
        self._pending: list[ErrorRecord] = []
        self._counts: Counter[str] = Counter()
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        # ファイル名は最初に参照された時点で固定
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._directory / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)
        self._counts[record.error_type] += 1

    def extend(self, records: Iterable[ErrorRecord]) -> None:
        for record in records:
            self.append(record)

    def __len__(self) -> int:
        return len(self._pending)

    def counts(self) -> dict[str, int]:
        """Records per error type over the whole run, flushed ones included."""
        return {t.value: self._counts[t.value] for t in ErrorType if self._counts[t.value]}

    def flush(self) -> Path | None:
        """Append pending records to the log file. Returns None when nothing was pending."""
        if not self._pending:
            return None
        target = self.file_path
        target.parent.mkdir(parents=True, exist_ok=True)
        lines = "".join(f"{r.to_json_line()}\n" for r in self._pending)
        with target.open("a", encoding="utf-8") as fh:
            fh.write(lines)
        self._pending.clear()
        return target
