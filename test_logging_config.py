"""
Unit tests for logging configuration.
"""

import logging
from unittest.mock import patch

import pytest

from dynamic_forms.logging_config import configure_logging, get_logging_level, DEFAULT_LOG_FORMAT


class TestLoggingConfig:
    """Test cases for logging setup."""

    def teardown_method(self):
        logging.getLogger('dynamic_forms').setLevel(logging.NOTSET)

    @pytest.mark.parametrize('level_str', ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    def test_logging_levels(self, level_str):
        """Test that every level string maps to its logging constant."""
        assert get_logging_level(level_str) == getattr(logging, level_str)

    def test_level_lookup_is_case_insensitive(self):
        assert get_logging_level('debug') == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        assert get_logging_level('VERBOSE') == logging.INFO
        assert get_logging_level(None) == logging.INFO

    def test_configure_logging_from_config(self):
        config = {'logging': {'level': 'WARNING', 'format': '%(levelname)s - %(message)s'}}

        with patch('logging.basicConfig') as mock_basic_config:
            level = configure_logging(config)

        assert level == logging.WARNING
        mock_basic_config.assert_called_once_with(level=logging.WARNING,
                                                  format='%(levelname)s - %(message)s')
        assert logging.getLogger('dynamic_forms').level == logging.WARNING

    def test_configure_logging_defaults(self):
        with patch('logging.basicConfig') as mock_basic_config:
            level = configure_logging()

        assert level == logging.INFO
        mock_basic_config.assert_called_once_with(level=logging.INFO, format=DEFAULT_LOG_FORMAT)
