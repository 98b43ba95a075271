"""Logging setup tests."""

import logging
import logging.handlers

import pytest
from rich.console import Console
from rich.logging import RichHandler

from prototester.logger import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_console_handler_only():
    setup_logging("info", console=Console(record=True))

    root = logging.getLogger()
    assert root.level == logging.INFO
    assert [type(h) for h in root.handlers] == [RichHandler]
    assert logging.getLogger("urllib3").level == logging.WARNING


def test_unknown_level_falls_back_to_warning():
    setup_logging("chatty")
    assert logging.getLogger().level == logging.WARNING


def test_rotating_file_handler(tmp_path):
    log_file = tmp_path / "logs" / "prototester.log"
    setup_logging(logging.DEBUG, str(log_file), console=Console(record=True))

    logging.getLogger("prototester.test").debug("probe finished")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logging.getLogger().handlers)
    assert "prototester.test - DEBUG - probe finished" in log_file.read_text()
