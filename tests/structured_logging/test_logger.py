"""Tests for structured logging setup."""

import json
import logging

import pytest
import structlog

from stepflow.logging import get_logger, reset_logging, setup_logging


@pytest.fixture(autouse=True)
def clean_logging(monkeypatch):
    monkeypatch.delenv("STEPFLOW_DISABLE_CONSOLE_LOGGING", raising=False)
    reset_logging()
    yield
    logging.disable(logging.NOTSET)
    reset_logging()


class TestSetupLogging:
    """Test setup_logging function."""

    def test_json_output_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "stepflow.log"
        setup_logging(level="INFO", log_file=log_file, structured=True, console=False)

        get_logger("stepflow.test").info("step_completed", step="load", attempts=2)

        record = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert record["event"] == "step_completed"
        assert record["step"] == "load"
        assert record["attempts"] == 2
        assert record["level"] == "info"
        assert record["logger"] == "stepflow.test"
        assert "timestamp" in record

    def test_level_filters_records(self, tmp_path):
        log_file = tmp_path / "stepflow.log"
        setup_logging(level="WARNING", log_file=log_file, structured=True, console=False)

        logger = get_logger("stepflow.test")
        logger.info("hidden")
        logger.warning("shown")

        lines = log_file.read_text(encoding="utf-8").strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["shown"]

    def test_disable_env_silences_output(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STEPFLOW_DISABLE_CONSOLE_LOGGING", "1")
        log_file = tmp_path / "stepflow.log"

        setup_logging(level="DEBUG", log_file=log_file)

        assert not log_file.exists()
        assert isinstance(logging.getLogger().handlers[0], logging.NullHandler)


class ListHandler(logging.Handler):
    """Handler keeping emitted records."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def host_handler():
    """Install an application-owned root handler at WARNING and restore the root after."""
    root = logging.getLogger()
    saved_level = root.level
    handler = ListHandler()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)
    yield handler
    root.removeHandler(handler)
    root.setLevel(saved_level)


class TestGetLogger:
    """Test lazy initialisation."""

    def test_lazy_init_sets_library_level_from_settings(self):
        root_level = logging.getLogger().level

        get_logger("stepflow.lazy").debug("lazy_event", value=1)

        assert logging.getLogger("stepflow").level == logging.DEBUG
        assert logging.getLogger().level == root_level

    def test_lazy_init_disabled(self, monkeypatch):
        monkeypatch.setenv("STEPFLOW_DISABLE_CONSOLE_LOGGING", "1")

        get_logger("stepflow.lazy").error("suppressed")

        assert not logging.getLogger("stepflow.lazy").isEnabledFor(logging.CRITICAL)
        assert logging.root.manager.disable == logging.NOTSET

    def test_keeps_host_root_configuration(self, host_handler):
        get_logger("stepflow.orchestration.step_runner").info("step_started", step="load")

        root = logging.getLogger()
        assert host_handler in root.handlers
        assert root.level == logging.WARNING

    def test_events_reach_host_handlers(self, host_handler):
        get_logger("stepflow.orchestration.step_runner").warning("step_failed", step="load")

        assert len(host_handler.records) == 1
        message = host_handler.records[0].getMessage()
        assert "step_failed" in message
        assert "load" in message

    def test_keeps_host_structlog_configuration(self):
        structlog.configure(
            processors=[structlog.processors.JSONRenderer()],
            logger_factory=structlog.stdlib.LoggerFactory(),
        )
        processors = structlog.get_config()["processors"]

        get_logger("stepflow.lazy")

        assert structlog.get_config()["processors"] == processors

    def test_explicit_setup_after_lazy_init_takes_over(self, tmp_path):
        logger = get_logger("stepflow.lazy")
        log_file = tmp_path / "stepflow.log"

        setup_logging(level="INFO", log_file=log_file, structured=True, console=False)
        logger.info("after_setup")

        record = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert record["event"] == "after_setup"
