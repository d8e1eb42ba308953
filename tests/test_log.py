"""Tests for log module."""

import logging
from unittest.mock import patch

import pytest

from ytstreams import log


class TestParseLogLevel:

    @pytest.mark.parametrize("name,level", [
        ("error", logging.ERROR),
        ("warn", logging.WARNING),
        ("INFO", logging.INFO),
        ("debug", logging.DEBUG),
        ("trace", logging.DEBUG),
    ])
    def test_known_levels(self, name: str, level: int) -> None:
        assert log.parse_log_level(name) == level

    @pytest.mark.parametrize("name", ["verbose", "", "warning"])
    def test_unknown_level(self, name: str) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            log.parse_log_level(name)


class TestInitLogging:

    def setup_method(self) -> None:
        self.logger = logging.getLogger(log.LOGGER_NAME)
        self.saved = (list(self.logger.handlers), self.logger.level)

    def teardown_method(self) -> None:
        self.logger.handlers[:] = self.saved[0]
        self.logger.setLevel(self.saved[1])

    def test_configures_once(self) -> None:
        with patch.object(log, "_initialized", False):
            before = len(self.logger.handlers)
            log.init_logging("debug")
            log.init_logging("error")
            assert len(self.logger.handlers) == before + 1
            assert self.logger.level == logging.DEBUG

    def test_invalid_level_raises(self) -> None:
        with patch.object(log, "_initialized", False):
            with pytest.raises(ValueError):
                log.init_logging("loud")
            assert log._initialized is False
