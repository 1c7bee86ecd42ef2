# tests/test_logging_setup.py

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from synker.logging_setup import LOG_FILE_NAME, _ConsoleFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_levels() -> None:
    f = _ConsoleFilter()
    assert f.filter(_record("synker.cli.main", logging.DEBUG))
    assert not f.filter(_record("synker.store.entity_store", logging.DEBUG))
    assert f.filter(_record("synker.store.entity_store", logging.INFO))
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert not f.filter(_record("asyncio", logging.WARNING))
    assert f.filter(_record("asyncio", logging.ERROR))


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    level = root.level
    yield
    for h in list(root.handlers):
        if isinstance(h, RotatingFileHandler) or any(isinstance(f, _ConsoleFilter) for f in h.filters):
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
    logging.captureWarnings(False)


def test_setup_logging_writes_file_once(tmp_path: Path, restore_root_logging) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs")
    setup_logging(log_dir=tmp_path / "logs")

    logging.getLogger("synker.store.entity_store").debug("stored id=%s", "t1")
    for h in logging.getLogger().handlers:
        h.flush()

    assert log_file == tmp_path / "logs" / LOG_FILE_NAME
    assert log_file.read_text("utf-8").count("stored id=t1") == 1
