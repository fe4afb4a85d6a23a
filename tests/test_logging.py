"""Tests for logging configuration."""

import io
import json
import logging
import pytest
import structlog

from pluginhub.config import HubConfig
from pluginhub.logging import HTTP_LOGGERS, configure_logging, log_level_for


@pytest.fixture(autouse=True)
def restore_logging():
    """Put the root logger and structlog back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
    structlog.reset_defaults()


def test_level_from_config(temp_dir):
    config = HubConfig(data_dir=temp_dir, log_level="WARNING")
    assert log_level_for(config) == logging.WARNING
    assert log_level_for(config, verbose=True) == logging.DEBUG


def test_http_loggers_quiet_by_default(temp_dir):
    configure_logging(HubConfig(data_dir=temp_dir), stream=io.StringIO())

    assert logging.getLogger().level == logging.INFO
    for name in HTTP_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_verbose_keeps_http_logs(temp_dir):
    configure_logging(HubConfig(data_dir=temp_dir), verbose=True, stream=io.StringIO())

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG


def test_console_output(temp_dir):
    stream = io.StringIO()
    assert configure_logging(HubConfig(data_dir=temp_dir), stream=stream) is None

    structlog.get_logger("pluginhub.test").info("hub_ready", vaults=2)

    assert "hub_ready" in stream.getvalue()


def test_log_file_gets_json_lines(temp_dir):
    log_file = temp_dir / "logs" / "pluginhub.log"
    config = HubConfig(data_dir=temp_dir, log_file=log_file)

    assert configure_logging(config, stream=io.StringIO()) == log_file
    structlog.get_logger("pluginhub.test").warning("repo_map_write_failed", plugin_id="kb")
    for handler in logging.getLogger().handlers:
        handler.flush()

    event = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert event["event"] == "repo_map_write_failed"
    assert event["plugin_id"] == "kb"
    assert event["level"] == "warning"
