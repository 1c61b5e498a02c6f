"""Test logging configuration."""

import pytest
import structlog

from thesis_assets.utils.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    """Restore structlog defaults after each test."""
    yield
    structlog.reset_defaults()


class TestLogging:
    """Test logging setup and configuration."""

    def test_setup_logging(self) -> None:
        """Test logging setup completes without error."""
        setup_logging()

        assert structlog.is_configured()

    def test_get_logger(self) -> None:
        """Test logger creation."""
        logger = get_logger(__name__)
        assert logger is not None
        assert hasattr(logger, "info")
        assert hasattr(logger, "error")

    def test_setup_logging_development_mode(self, monkeypatch) -> None:
        """Test logging setup in development mode."""
        monkeypatch.setenv("DEVELOPMENT", "true")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        setup_logging()

        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.dev.ConsoleRenderer)

    def test_setup_logging_production_mode(self) -> None:
        """Test logging setup in production mode renders JSON."""
        setup_logging()

        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.processors.JSONRenderer)
