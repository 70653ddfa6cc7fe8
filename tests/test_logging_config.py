# -*- coding: utf-8 -*-
"""
Logging Config Tests
====================

setup_logging() / JSONFormatter 테스트.
"""
import json
import logging

import pytest

from trade_gate.utils import JSONFormatter, setup_logging


@pytest.fixture
def package_logger():
    logger = logging.getLogger('trade_gate')
    level, handlers = logger.level, list(logger.handlers)
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestSetupLogging:

    def test_console_only(self, package_logger):
        logger = setup_logging(level="DEBUG", log_dir=None)
        assert logger is package_logger
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_file_handler(self, package_logger, tmp_path):
        logger = setup_logging(level="INFO", log_dir=str(tmp_path), console=False)
        logging.getLogger('trade_gate.engine').info("hello")
        for handler in logger.handlers:
            handler.flush()
        text = (tmp_path / "trade_gate.log").read_text(encoding="utf-8")
        assert "hello" in text
        assert "trade_gate.engine" in text

    def test_json_file_logs(self, package_logger, tmp_path):
        logger = setup_logging(level="INFO", log_dir=str(tmp_path), json_logs=True, console=False)
        logging.getLogger('trade_gate.gate.validation').warning("spread too wide")
        for handler in logger.handlers:
            handler.flush()
        line = (tmp_path / "trade_gate.log").read_text(encoding="utf-8").strip().splitlines()[-1]
        record = json.loads(line)
        assert record['level'] == "WARNING"
        assert record['message'] == "spread too wide"
        assert record['logger'] == "trade_gate.gate.validation"

    def test_level_from_env(self, package_logger, monkeypatch):
        monkeypatch.setenv("TRADE_GATE_LOG_LEVEL", "WARNING")
        logger = setup_logging(log_dir=None)
        assert logger.level == logging.WARNING

    def test_repeated_setup_does_not_duplicate_handlers(self, package_logger):
        setup_logging(log_dir=None)
        logger = setup_logging(log_dir=None)
        assert len(logger.handlers) == 1


class TestJSONFormatter:

    def test_extra_symbol(self):
        record = logging.LogRecord("trade_gate", logging.INFO, __file__, 1, "msg %s", ("x",), None)
        record.symbol = "EURUSD"
        data = json.loads(JSONFormatter().format(record))
        assert data['message'] == "msg x"
        assert data['symbol'] == "EURUSD"
