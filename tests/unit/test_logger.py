"""
Unit tests for structured logging setup.
"""

import json

import pytest
import structlog

from src.utils.logger import EventType, get_logger, setup_logger


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.mark.unit
def test_setup_logger_json_file(tmp_path):
    """Test JSON log lines are written under log_dir."""
    logger = setup_logger(log_level="INFO", log_dir=str(tmp_path), log_format="json")

    logger.info("Sending request", event_type=EventType.API_REQUEST, method="GET")
    logger.debug("Filtered out")

    log_files = list(tmp_path.glob("client_*.log"))
    assert len(log_files) == 1

    lines = log_files[0].read_text().splitlines()
    assert len(lines) == 1

    record = json.loads(lines[0])
    assert record["event"] == "Sending request"
    assert record["event_type"] == "API_REQUEST"
    assert record["service"] == "binance-stream-client"
    assert record["level"] == "info"
    assert "timestamp" in record


@pytest.mark.unit
def test_setup_logger_console(capsys):
    """Test console output when no log_dir is given."""
    logger = setup_logger(log_level="DEBUG", log_dir=None, log_format="console")

    logger.debug("Stream closed by owner", stream="btcusdt@trade")

    assert "Stream closed by owner" in capsys.readouterr().out


@pytest.mark.unit
def test_get_logger_binds_name():
    """Test named loggers carry their name."""
    logger = get_logger("src.exchange.api_client")

    assert logger is not None
    assert get_logger() is not None
