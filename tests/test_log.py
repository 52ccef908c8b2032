"""Tests for mirrordocs.log."""

from __future__ import annotations

import logging

import pytest

from mirrordocs.log import LoggingConfig, configure_logging, parse_level


@pytest.fixture
def clean_logger():
    logger = logging.getLogger("mirrordocs")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestParseLevel:
    def test_names(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level(" Warn ") == logging.WARNING
        assert parse_level(logging.ERROR) == logging.ERROR

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            parse_level("loud")


class TestConfigureLogging:
    def test_sets_level_and_handler(self, clean_logger):
        logger = configure_logging(LoggingConfig(level="DEBUG"))
        assert logger is clean_logger
        assert logger.level == logging.DEBUG
        assert len([h for h in logger.handlers if isinstance(h, logging.StreamHandler)]) >= 1

    def test_reconfigure_replaces_handler(self, clean_logger):
        """Configuring twice does not duplicate output."""
        before = len(clean_logger.handlers)
        configure_logging()
        configure_logging(LoggingConfig(level="ERROR"))
        assert len(clean_logger.handlers) == before + 1
        assert clean_logger.level == logging.ERROR

    def test_format(self, clean_logger, capsys):
        configure_logging(LoggingConfig(level="INFO"))
        logging.getLogger("mirrordocs.converter").info("Converting a.md...")
        assert "INFO | Converting a.md..." in capsys.readouterr().err
