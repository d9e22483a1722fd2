"""
Tests for logging setup and API configuration.
"""

import logging

import pytest
import structlog
from pydantic import ValidationError

from api.config import APIConfig
from utilities.logger import get_logger, setup_logging


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_file_handler_created(self, tmp_path):
        """A log file path gets its directory and a file handler."""
        log_file = tmp_path / "logs" / "api.log"
        root_logger = logging.getLogger()
        handlers_before = list(root_logger.handlers)

        try:
            setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))

            assert log_file.parent.exists()
            new_handlers = [h for h in root_logger.handlers if h not in handlers_before]
            assert any(isinstance(h, logging.FileHandler) for h in new_handlers)
        finally:
            for handler in root_logger.handlers:
                if handler not in handlers_before:
                    root_logger.removeHandler(handler)
                    handler.close()

    def test_console_format(self):
        """Console format configures structlog without a file."""
        setup_logging(log_level="DEBUG", log_format="console")

        assert structlog.is_configured()

    def test_get_logger(self):
        """Loggers can be requested by name."""
        logger = get_logger("api.test")
        assert logger is not None


class TestAPIConfig:
    """Test cases for APIConfig."""

    def test_defaults(self):
        """Defaults point at a local database."""
        config = APIConfig(_env_file=None)
        assert config.mongodb_url == "mongodb://localhost:27017"
        assert config.mongodb_collection == "books"
        assert config.default_image == "assets/libro.jpg"

    def test_log_level_normalized(self):
        """Log levels are upper-cased."""
        assert APIConfig(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_format(self):
        """Unknown log formats are rejected."""
        with pytest.raises(ValidationError):
            APIConfig(_env_file=None, log_format="xml")

    def test_error_details_exposure(self):
        """Error details are exposed in development or debug mode only."""
        assert APIConfig(_env_file=None, environment="development").expose_error_details() is True
        assert APIConfig(_env_file=None, environment="production", debug=True).expose_error_details() is True
        assert APIConfig(_env_file=None, environment="production", debug=False).expose_error_details() is False
