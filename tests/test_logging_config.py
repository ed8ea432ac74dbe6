import json
import logging
import sys
from collections.abc import Generator
from logging.handlers import RotatingFileHandler

import pytest
from _pytest.logging import LogCaptureFixture

from ots_repo.logging_config import LOG_NAME, CapacityStats, JsonFormatter, get_logger
from tests.support import FakeCapacity


@pytest.fixture(autouse=True)
def reset_logger_handlers() -> Generator[None, None, None]:
    """Ensure tests run with a clean logger state."""
    logger = logging.getLogger(LOG_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    yield
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


def test_json_formatter_returns_json_with_extras() -> None:
    formatter = JsonFormatter()
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )
    record.request_id = "abc"
    record.table = "post"
    formatted = formatter.format(record)
    data = json.loads(formatted)
    assert data["level"] == "INFO"
    assert data["logger"] == "test"
    assert data["message"] == "hello"
    assert data["request_id"] == "abc"
    assert data["extra"]["table"] == "post"
    assert "exception" not in data


def test_json_formatter_includes_exception() -> None:
    try:
        raise ValueError("bad row")
    except ValueError:
        exc_info = sys.exc_info()
    record = logging.LogRecord("test", logging.ERROR, __file__, 1, "failed", (), exc_info)
    data = json.loads(JsonFormatter().format(record))
    assert "ValueError: bad row" in data["exception"]


def test_get_logger_configures_two_handlers() -> None:
    logger = get_logger()
    assert len(logger.handlers) == 2
    assert any(isinstance(h, logging.StreamHandler) for h in logger.handlers)
    assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
    assert get_logger() is logger
    assert len(logger.handlers) == 2


def test_capacity_stats_accumulates() -> None:
    stats = CapacityStats()
    assert (stats.read, stats.write, stats.requests) == (0, 0, 0)
    stats.record(FakeCapacity(read=2))
    stats.record(FakeCapacity(write=3))
    stats.record(None)
    assert (stats.read, stats.write, stats.requests) == (2, 3, 3)


def test_capacity_stats_logging(caplog: LogCaptureFixture) -> None:
    stats = CapacityStats()
    stats.record(FakeCapacity(read=1, write=1))
    logger = get_logger()
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.INFO, logger=LOG_NAME)
    stats.log_totals()
    logger.removeHandler(caplog.handler)
    assert len(caplog.records) == 1
    record = caplog.records[0]
    assert record.levelno == logging.INFO
    assert record.getMessage() == "Capacity units consumed"
    data = json.loads(JsonFormatter().format(record))
    assert data["extra"] == {"read_cu": 1, "write_cu": 1, "requests": 1}


def test_json_formatter_skips_standard_record_attributes() -> None:
    record = logging.makeLogRecord({"msg": "plain", "levelname": "INFO", "levelno": 20})
    data = json.loads(JsonFormatter().format(record))
    assert data["message"] == "plain"
    assert "extra" not in data
