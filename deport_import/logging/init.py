from __future__ import annotations

import logging
import sys

"""Console logging for the import CLI.

Every line starts with a label: ``INFO``, ``WARN``, ``ERROR`` or ``SUMMARY`` (plus
``DEBUG`` with ``--debug``). Package modules log through
``logging.getLogger(__name__)`` and propagate into the ``deport_import`` logger
configured here. In debug mode, lines coming from a package module carry the
module path after the label, e.g. ``DEBUG [tabular.reader] delimiter=';' ...``.
"""

__all__ = [
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
]

LOGGER_NAME = "deport_import"

# INFO(20) と WARNING(30) の間
SUMMARY_LEVEL = 25

LEVEL_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SUMMARY_LEVEL: "SUMMARY",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """``LABEL message``; with ``show_origin`` module records get ``LABEL [module] message``."""

    def __init__(self, show_origin: bool = False) -> None:
        super().__init__()
        self.show_origin = show_origin

    def format(self, record: logging.LogRecord) -> str:
        label = LEVEL_LABELS.get(record.levelno, record.levelname)
        message = record.getMessage()
        if self.show_origin and record.name.startswith(LOGGER_NAME + "."):
            return f"{label} [{record.name[len(LOGGER_NAME) + 1:]}] {message}"
        return f"{label} {message}"


def _apply_debug(logger: logging.Logger, debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
        if isinstance(handler.formatter, LabeledFormatter):
            handler.formatter.show_origin = debug


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configure the ``deport_import`` logger once; later calls may only switch debug on.

    Output goes to stdout. Propagation to the root logger is disabled so that lines
    are not printed twice when the host application configured logging as well.
    """
    global _logger

    if _logger is None:
        logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
        app = logging.getLogger(LOGGER_NAME)
        for old in list(app.handlers):
            app.removeHandler(old)
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(LabeledFormatter())
        app.addHandler(console)
        app.propagate = False
        _apply_debug(app, debug)
        _logger = app
    elif debug:
        _apply_debug(_logger, True)
    return _logger


def get_logger() -> logging.Logger:
    return _logger if _logger is not None else setup_logging()


def log_summary(message: str) -> None:
    """Emit ``SUMMARY <message>``."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger (tests)."""
    global _logger
    _logger = None
