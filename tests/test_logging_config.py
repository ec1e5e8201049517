"""Tests for structured logging setup"""

import json
import logging

import pytest
import structlog

from sntp_query.utils.logging_config import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    structlog.reset_defaults()


def test_json_lines_to_file(tmp_path):
    path = tmp_path / "logs" / "sntp.log"
    logger = setup_logging("INFO", json_logs=True, log_path=path)

    logger.warning("origin_timestamp_mismatch", sent=1, echoed=2)
    logging.getLogger().handlers[0].flush()

    record = json.loads(path.read_text().strip())
    assert record["event"] == "origin_timestamp_mismatch"
    assert record["level"] == "warning"
    assert record["sent"] == 1
    assert "timestamp" in record


def test_level_filters(tmp_path):
    path = tmp_path / "sntp.log"
    logger = setup_logging("ERROR", log_path=path)

    logger.info("query_skipped")
    logging.getLogger().handlers[0].flush()

    assert path.read_text() == ""


def test_get_logger_binds_address(tmp_path):
    path = tmp_path / "sntp.log"
    setup_logging("DEBUG", json_logs=True, log_path=path)

    get_logger("sntp_query.test", address="192.0.2.1 123").debug("resolved")
    logging.getLogger().handlers[0].flush()

    record = json.loads(path.read_text().strip())
    assert record["address"] == "192.0.2.1 123"
    assert record["logger"] == "sntp_query.test"
