import logging

import pytest
from pythonjsonlogger import jsonlogger

from app.logging_setup import configure_logging


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def test_configure_logging_json_output(restore_root_logger) -> None:
    configure_logging(level="debug", json_output=True)

    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0].formatter, jsonlogger.JsonFormatter)
    assert restore_root_logger.level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_configure_logging_text_output(restore_root_logger) -> None:
    configure_logging(level="warning", json_output=False)

    formatter = restore_root_logger.handlers[0].formatter
    assert not isinstance(formatter, jsonlogger.JsonFormatter)
    assert restore_root_logger.level == logging.WARNING
