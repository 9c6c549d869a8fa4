from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Row progress display with tqdm (TTY only).

One tqdm bar per import run, driven by the executor's ``on_progress(percent,
message)`` callback. In non-TTY environments (CI, redirected output) the bar is
disabled to avoid ANSI control sequence spam.
"""

__all__ = [
    "RowProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class RowProgressTracker:
    """Progress bar measured in percent (0-100).

    Usage::

        with RowProgressTracker() as progress:
            execute(rows, actor, store, on_progress=progress.callback)
    """

    def __init__(self, *, description: str = "Importing rows") -> None:
        self.description = description
        self.percent = 0
        self.last_message = ""

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=100,
                desc=description,
                unit="%",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def callback(self, percent: int, message: str) -> None:
        """Executor progress hook. Percent never moves backwards."""
        percent = max(0, min(100, int(percent)))
        self.last_message = message
        if percent <= self.percent:
            return
        step = percent - self.percent
        self.percent = percent
        if self.enabled and self.pbar is not None:
            self.pbar.update(step)
            self.pbar.set_postfix_str(message)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> RowProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
