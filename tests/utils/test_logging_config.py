"""Tests for utils/logging_config.py - handlers, formatters and third-party levels."""

from __future__ import annotations

import logging

import pytest
from flask import Flask

from tablecast.utils.logging_config import SCHEDULER_LOGGERS, ColoredFormatter, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved = (root.level, root.handlers[:])
    yield
    for name in ("",) + SCHEDULER_LOGGERS:
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
    root.setLevel(saved[0])
    for handler in saved[1]:
        root.addHandler(handler)


class TestSetupLogging:
    def test_creates_rotating_log_files(self, tmp_path, restore_logging):
        app = Flask("logging-test")
        app.config.update(LOG_LEVEL="DEBUG", LOG_TO_FILE=True, LOG_TO_CONSOLE=False, LOG_DIR=str(tmp_path))

        setup_logging(app)

        assert (tmp_path / "tablecast.log").exists()
        assert (tmp_path / "errors.log").exists()
        assert (tmp_path / "scheduler.log").exists()
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger(SCHEDULER_LOGGERS[0]).handlers

    def test_quietens_third_party_loggers(self, restore_logging):
        app = Flask("logging-test")
        app.config.update(LOG_TO_FILE=False, LOG_TO_CONSOLE=True)

        setup_logging(app)

        assert logging.getLogger("apscheduler").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert len(logging.getLogger().handlers) == 1

    def test_colored_formatter_leaves_record_untouched(self):
        record = logging.makeLogRecord({"levelname": "ERROR", "msg": "boom"})

        output = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[31m" in output
        assert record.levelname == "ERROR"
