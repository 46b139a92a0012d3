"""Tests for structured logging functionality."""

from __future__ import annotations

import json
import logging
import logging.handlers

import pytest

from sharepool.config import TestConfig as AppTestConfig
from sharepool.logging_config import JSONFormatter, get_logger, setup_logging


@pytest.fixture
def package_logger():
    yield logging.getLogger("sharepool")
    logger = logging.getLogger("sharepool")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _record(**kwargs) -> logging.LogRecord:
    record = logging.LogRecord(
        name="sharepool.test",
        level=kwargs.pop("level", logging.INFO),
        pathname="test.py",
        lineno=42,
        msg=kwargs.pop("msg", "Test message"),
        args=(),
        exc_info=kwargs.pop("exc_info", None),
    )
    record.module = "test_module"
    record.funcName = "test_function"
    for key, value in kwargs.items():
        setattr(record, key, value)
    return record


def test_json_formatter():
    """JSONFormatter emits the standard fields."""
    log_data = json.loads(JSONFormatter().format(_record()))

    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "sharepool.test"
    assert log_data["message"] == "Test message"
    assert log_data["module"] == "test_module"
    assert log_data["function"] == "test_function"
    assert log_data["line"] == 42
    assert "timestamp" in log_data
    assert "extra" not in log_data


def test_json_formatter_with_extra_fields():
    """Values passed via ``extra=`` land under ``extra`` and non-JSON values are stringified."""
    from decimal import Decimal

    log_data = json.loads(JSONFormatter().format(_record(user_id=7, payout=Decimal("51.00"))))

    assert log_data["extra"] == {"user_id": 7, "payout": "51.00"}


def test_json_formatter_with_exception():
    """JSONFormatter includes exception details."""
    try:
        raise ValueError("Test error")
    except ValueError:
        import sys

        exc_info = sys.exc_info()

    log_data = json.loads(
        JSONFormatter().format(_record(level=logging.ERROR, msg="Error occurred", exc_info=exc_info))
    )

    assert log_data["exception"]["type"] == "ValueError"
    assert "Test error" in log_data["exception"]["message"]
    assert log_data["exception"]["traceback"] is not None


def test_setup_logging(tmp_path, package_logger):
    """Logging setup creates the rotating JSON log file."""
    config = AppTestConfig(tmp_path)
    config.DEV_MODE = True

    logger = setup_logging(config)

    assert logger is package_logger
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 2  # Console + File

    log_file = tmp_path / "logs" / "sharepool.log"
    assert log_file.exists()

    get_logger("services.trading").warning("Purchase rejected", extra={"reason": "insufficient_supply"})
    for handler in logger.handlers:
        handler.flush()

    lines = [line for line in log_file.read_text().splitlines() if line.strip()]
    assert len(lines) >= 2
    entries = [json.loads(line) for line in lines]
    assert entries[0]["message"] == "Logging initialized"
    assert entries[-1]["logger"] == "sharepool.services.trading"
    assert entries[-1]["extra"]["reason"] == "insufficient_supply"


def test_setup_logging_is_idempotent(tmp_path, package_logger):
    config = AppTestConfig(tmp_path)

    setup_logging(config)
    logger = setup_logging(config)

    assert len(logger.handlers) == 2


def test_get_logger():
    """get_logger returns loggers below the package namespace."""
    assert get_logger("module1").name == "sharepool.module1"
    assert get_logger("sharepool.services.admin").name == "sharepool.services.admin"
    assert get_logger("module1") is not get_logger("module2")


@pytest.mark.parametrize("dev_mode", [True, False])
def test_logging_levels_by_mode(tmp_path, package_logger, dev_mode):
    """Console logging level follows dev mode."""
    config = AppTestConfig(tmp_path)
    config.DEV_MODE = dev_mode

    logger = setup_logging(config)

    console_handler = next(
        handler
        for handler in logger.handlers
        if isinstance(handler, logging.StreamHandler)
        and not isinstance(handler, logging.handlers.RotatingFileHandler)
    )
    assert console_handler.level == (logging.INFO if dev_mode else logging.WARNING)
