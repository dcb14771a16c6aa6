"""Unit tests for logging infrastructure."""

import json
import logging
import logging.handlers
from collections.abc import Iterator
from pathlib import Path

import pytest
from nats2ping.infrastructure.logging import (
    LoggingConfig,
    LogLevel,
    StructuredFormatter,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLoggingConfig:
    """Test cases for LoggingConfig."""

    def test_default_config(self) -> None:
        """Test default log configuration."""
        config = LoggingConfig()

        assert config.level == LogLevel.INFO
        assert "%(asctime)s" in config.format
        assert config.file_path is None
        assert config.max_bytes == 4_194_304
        assert config.backup_count == 20

    def test_log_dir_is_created(self, tmp_path: Path) -> None:
        """Test the log directory is created on validation."""
        log_dir = tmp_path / "logs" / "nested"

        config = LoggingConfig(log_dir=log_dir)

        assert log_dir.is_dir()
        assert config.file_path == log_dir / "nats2ping.log"


class TestStructuredFormatter:
    """Test cases for StructuredFormatter."""

    def test_format_includes_extra_fields(self) -> None:
        """Test extra fields are carried into the JSON document."""
        formatter = StructuredFormatter()
        record = logging.LogRecord(
            name="nats2ping.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Added destination %s",
            args=("router",),
            exc_info=None,
        )
        record.address = "10.0.0.1"

        data = json.loads(formatter.format(record))

        assert data["message"] == "Added destination router"
        assert data["level"] == "INFO"
        assert data["logger"] == "nats2ping.test"
        assert data["address"] == "10.0.0.1"
        assert "msg" not in data


class TestSetupLogging:
    """Test cases for setup_logging."""

    @pytest.mark.usefixtures("restore_root_logger")
    def test_setup_with_file(self, tmp_path: Path) -> None:
        """Test a rotating file handler is installed when a directory is given."""
        setup_logging(LoggingConfig(level=LogLevel.DEBUG, log_dir=tmp_path))

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        file_handlers = [
            h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 4_194_304
        assert file_handlers[0].backupCount == 20

        get_logger("nats2ping.test").info("hello file")
        file_handlers[0].flush()
        assert "hello file" in (tmp_path / "nats2ping.log").read_text()

    @pytest.mark.usefixtures("restore_root_logger")
    def test_setup_console_only(self) -> None:
        """Test the default setup logs to the console only."""
        setup_logging()

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_get_logger(self) -> None:
        logger = get_logger("nats2ping.manager")

        assert logger.name == "nats2ping.manager"
