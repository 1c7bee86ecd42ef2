# src/synker/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "synker.log"

# Per-mutation store and mirror logs are DEBUG; on the console they would
# interleave with command replies.
_QUIET_PREFIXES = ("synker.store.",)


class _ConsoleFilter(logging.Filter):
    """Console gets synker lifecycle logs; store chatter and foreign loggers only when serious."""

    def __init__(
        self,
        *,
        quiet_prefixes: tuple[str, ...] = _QUIET_PREFIXES,
        quiet_level: int = logging.INFO,
        foreign_level: int = logging.ERROR,
    ) -> None:
        super().__init__()
        self._quiet_prefixes = quiet_prefixes
        self._quiet_level = quiet_level
        self._foreign_level = foreign_level

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("synker."):
            # Includes 'py.warnings'.
            return record.levelno >= self._foreign_level
        if name.startswith(self._quiet_prefixes):
            return record.levelno >= self._quiet_level
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/synker",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 2_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Route all logging to stderr (filtered) and to a rotating file in log_dir.

    Replaces any handlers already on the root logger, so calling it twice does
    not duplicate output. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)-7s %(threadName)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
