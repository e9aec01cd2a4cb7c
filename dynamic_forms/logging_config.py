"""
Logging setup for the dynamic forms engine.
"""

import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_logging_level(level_str):
    """Map string logging level to logging constant."""
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    return level_map.get(str(level_str).upper(), logging.INFO)


def configure_logging(config: Optional[Dict[str, Any]] = None) -> int:
    """
    Configure root logging from the logging section of a configuration.

    Args:
        config: Complete configuration dictionary

    Returns:
        The logging level that was applied
    """
    logging_section = (config or {}).get('logging', {}) or {}
    level_str = logging_section.get('level', 'INFO')
    log_format = logging_section.get('format', DEFAULT_LOG_FORMAT)

    log_level = get_logging_level(level_str)
    logging.basicConfig(level=log_level, format=log_format)
    logging.getLogger('dynamic_forms').setLevel(log_level)
    logger.info(f"Logging configured to level: {logging.getLevelName(log_level)}")
    return log_level
