"""
测试配置与日志
"""

import json
import logging

import pytest

from flowpilot.config import AppConfig, get_config, reset_config, set_config
from flowpilot.logger import (
    DetailedFormatter,
    ExecutionLogger,
    FormatterFactory,
    JSONFormatter,
    LogConfig,
    LogFormat,
    LogLevel,
    SimpleFormatter,
    configure_logging,
)


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


def test_defaults():
    config = AppConfig.from_env({})

    assert config.runner.command_timeout_ms == 30000
    assert config.runner.auto_wait_timeout_ms == 30000
    assert config.runner.auto_wait_interval_ms == 100
    assert config.runner.bail is True
    assert config.runner.parallel == 1
    assert config.runner.backend_command == ["npx", "agent-browser"]
    assert config.log.level == LogLevel.INFO


def test_from_env_overrides():
    config = AppConfig.from_env({
        "FLOWPILOT_AUTO_WAIT_TIMEOUT_MS": "5000",
        "FLOWPILOT_BAIL": "false",
        "FLOWPILOT_PARALLEL": "0",
        "FLOWPILOT_HEADED": "yes",
        "FLOWPILOT_BACKEND_COMMAND": "node /opt/agent-browser/cli.js",
        "FLOWPILOT_LOG_LEVEL": "debug",
        "FLOWPILOT_LOG_FORMAT": "JSON",
    })

    assert config.runner.auto_wait_timeout_ms == 5000
    assert config.runner.bail is False
    assert config.runner.parallel == 1
    assert config.runner.headed is True
    assert config.runner.backend_command == ["node", "/opt/agent-browser/cli.js"]
    assert config.log.level == LogLevel.DEBUG
    assert config.log.format == LogFormat.JSON
    assert config.to_dict()["log"]["level"] == "DEBUG"


def test_global_config():
    custom = AppConfig.from_env({"FLOWPILOT_PARALLEL": "3"})
    set_config(custom)

    assert get_config() is custom


def test_log_config_from_dict():
    config = LogConfig.from_dict({"level": "warning", "format": "detailed"})

    assert config.level == LogLevel.WARNING
    assert config.format == LogFormat.DETAILED
    assert LogConfig.from_dict(config.to_dict()) == config


def test_unknown_formatter():
    with pytest.raises(ValueError):
        FormatterFactory.create("xml")


def test_configure_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "logs" / "run.log"

    configure_logging(LogConfig(enable_console=True))
    logger = configure_logging(LogConfig(enable_console=False, log_file=str(log_file)))
    logger.info("hello")

    assert len(logger.handlers) == 1
    assert "hello" in log_file.read_text(encoding="utf-8")
    configure_logging(LogConfig(enable_console=False))


def test_json_formatter_includes_execution_fields():
    record = logging.LogRecord("flowpilot.execution", logging.INFO, __file__, 1, "step done", None, None)
    record.flow_name = "login.yaml"
    record.step_index = 2

    line = json.loads(JSONFormatter().format(record))

    assert line["message"] == "step done"
    assert line["flow_name"] == "login.yaml"
    assert line["step_index"] == 2
    assert "command" not in line
    assert line["time"].endswith("Z")


def test_detailed_formatter_step_label():
    record = logging.LogRecord("flowpilot.execution", logging.ERROR, __file__, 1, "failed", None, None)
    record.flow_name = "login.yaml"
    record.step_index = 1
    record.command = "click"

    text = DetailedFormatter().format(record)

    assert "[login.yaml#2(click)] failed" in text
    assert "ERROR" in text


def test_simple_formatter_appends_duration():
    record = logging.LogRecord("flowpilot", logging.INFO, __file__, 1, "step passed", None, None)
    record.duration_ms = 42

    assert SimpleFormatter().format(record) == "step passed (42ms)"


def test_execution_logger(tmp_path):
    journal = ExecutionLogger("login.yaml", session_name="fp-1a2b-c3d4")
    journal.start()
    journal.step_start(0, "open")
    journal.step_end(0, success=True, duration_ms=120)
    journal.step_start(1, "click")
    journal.step_end(success=False, duration_ms=80, error={"message": "not found"})
    journal.finish("failed")

    assert journal.status == "failed"
    assert [e.command for e in journal.get_entries_by_step(1)] == ["click", "click"]
    assert len(journal.get_errors()) == 2
    assert journal.get_duration_ms() >= 0
    filename = journal.default_filename()
    assert filename.startswith("login.yaml-fp-1a2b-c3d4-")
    assert filename.endswith(".json")
    assert journal.default_filename() != filename

    path = tmp_path / "journal" / filename
    journal.save_to_file(str(path))
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["entry_count"] == 6
    assert saved["error_count"] == 2
    assert saved["steps"] == [
        {"step_index": 0, "command": "open", "status": "passed", "duration_ms": 120},
        {"step_index": 1, "command": "click", "status": "failed", "duration_ms": 80},
    ]
