"""
Configuration loading utilities for the dynamic forms engine.

This module provides functionality to load and validate engine
configuration with fallback to defaults.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

from .engine_config import EngineConfig
from .form_exceptions import ConfigurationLoadError, log_error_with_context

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("dynamic_forms.yaml")
VALID_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'engine': EngineConfig().to_dict(),
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        }
    }


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load engine configuration.

    Args:
        config_path: Optional path to config file (defaults to dynamic_forms.yaml)

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE
    config_path = Path(config_path)

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return default_config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)

        if user_config is None:
            logger.warning(f"Configuration file is empty: {config_path}")
            return default_config

        if not isinstance(user_config, dict):
            logger.error(f"Configuration file is not a valid dictionary: {config_path}")
            logger.info("Using default configuration")
            return default_config

        config = deep_merge(default_config, user_config)

        logger.info(f"Successfully loaded configuration from {config_path}")
        return config

    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config

    except (IOError, OSError) as e:
        log_error_with_context(ConfigurationLoadError(config_path, e), "configuration loading")
        logger.info("Using default configuration")
        return default_config


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if configuration is valid, False otherwise
    """
    for section in ('engine', 'logging'):
        if section not in config or not isinstance(config[section], dict):
            logger.warning(f"Missing required configuration section: {section}")
            return False

    engine = config['engine']

    if 'idle_threshold_seconds' in engine:
        try:
            threshold = float(engine['idle_threshold_seconds'])
            if threshold < 0:
                logger.warning("idle_threshold_seconds must not be negative")
                return False
        except (ValueError, TypeError):
            logger.warning("idle_threshold_seconds must be a valid number")
            return False

    if 'pattern_cache_size' in engine:
        try:
            size = int(engine['pattern_cache_size'])
            if size <= 0:
                logger.warning("pattern_cache_size must be positive")
                return False
        except (ValueError, TypeError):
            logger.warning("pattern_cache_size must be a valid integer")
            return False

    delimiter = engine.get('multiselect_delimiter', ',')
    if not isinstance(delimiter, str) or not delimiter:
        logger.warning("multiselect_delimiter must be a non-empty string")
        return False

    level = config['logging'].get('level', 'INFO')
    if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
        logger.warning(f"Unknown logging level: {level}")
        return False

    return True


def get_engine_config(config: Dict[str, Any]) -> EngineConfig:
    """
    Extract engine configuration from complete config.

    Args:
        config: Complete configuration dictionary

    Returns:
        EngineConfig instance
    """
    try:
        return EngineConfig.from_config(config)
    except (ValueError, TypeError) as e:
        logger.error(f"Failed to create EngineConfig: {e}")
        logger.info("Using default engine configuration")
        return EngineConfig.from_config(get_default_config())


def save_config(config: Dict[str, Any], config_path: Optional[Path] = None) -> bool:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary to save
        config_path: Optional path to save to (defaults to dynamic_forms.yaml)

    Returns:
        True if save was successful, False otherwise
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config, f, default_flow_style=False, indent=2, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")
        return True

    except (IOError, OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to save configuration to {config_path}: {e}")
        return False


def get_config_summary(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Get a summary of the current configuration.

    Args:
        config: Configuration dictionary

    Returns:
        Dictionary with configuration summary
    """
    engine_config = get_engine_config(config)
    return {
        'idle_threshold_seconds': engine_config.idle_threshold_seconds,
        'pattern_cache_size': engine_config.pattern_cache_size,
        'multiselect_delimiter': engine_config.multiselect_delimiter,
        'logging_level': config.get('logging', {}).get('level', 'INFO')
    }
