"""Tests for logging configuration."""

import pytest

import logging

from stakescan.helpers.logging import get_logger


class TestGetLogger:
    """Tests for get_logger function."""

    def test_get_logger_returns_logger(self) -> None:
        """Test that get_logger returns a logger instance."""
        logger = get_logger("test_module")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "test_module"

    def test_get_logger_same_name_returns_same_instance(self) -> None:
        """Test that getting logger with same name returns same instance."""
        logger1 = get_logger("test_same")
        logger2 = get_logger("test_same")

        assert logger1 is logger2

    @pytest.mark.parametrize(
        ("level_name", "level"),
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("CRITICAL", logging.CRITICAL),
        ],
    )
    def test_get_logger_with_level(self, level_name: str, level: int) -> None:
        """Test get_logger applies an explicit level."""
        logger = get_logger(f"test_level_{level_name.lower()}", log_level=level_name)

        assert logger.level == level

    def test_get_logger_level_from_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test STAKESCAN_LOG_LEVEL is used when no level is given."""
        monkeypatch.setenv("STAKESCAN_LOG_LEVEL", "warning")
        logger = get_logger("test_env_level")

        assert logger.level == logging.WARNING

    def test_get_logger_invalid_level_raises(self) -> None:
        """Test that invalid log level raises ValueError."""
        with pytest.raises(ValueError, match="Invalid log level"):
            get_logger("test_invalid", log_level="INVALID")

    def test_get_logger_invalid_handler_raises(self) -> None:
        """Test that invalid handler raises ValueError."""
        with pytest.raises(ValueError, match="Invalid handler"):
            get_logger("test_invalid_handler", log_handler="invalid")

    def test_get_logger_with_color(self) -> None:
        """Test get_logger with color enabled."""
        logger = get_logger("test_color", log_color=True)

        assert len(logger.handlers) > 0

    def test_logger_can_log_messages(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that configured logger can log messages."""
        logger = get_logger("test_log_messages", log_level="DEBUG")

        with caplog.at_level(logging.DEBUG, logger="test_log_messages"):
            logger.debug("Debug message")
            logger.warning("Warning message")

        assert any("Debug message" in record.message for record in caplog.records)
        assert any("Warning message" in record.message for record in caplog.records)

    def test_logger_caching_keeps_first_level(self) -> None:
        """Test that cached loggers keep the level they were created with."""
        logger1 = get_logger("cached_logger", log_level="DEBUG")
        logger2 = get_logger("cached_logger", log_level="INFO")

        assert logger1 is logger2
        assert logger1.level == logging.DEBUG
