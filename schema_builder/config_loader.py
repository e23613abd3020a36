"""
Configuration loading utilities for the schema builder.

Loads config.yaml, deep-merges it over the defaults and exposes typed
accessors for the preview renderer, the editor and logging setup.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

from .exceptions import ConfigurationLoadError, log_error_with_context
from .preview import PreviewOptions, DEFAULT_MIN_ITEMS, DEFAULT_MAX_ITEMS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")


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
        'app': {
            'name': 'Schema Builder',
            'version': '1.0.0',
            'debug': False
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        },
        'preview': {
            'default_min_items': DEFAULT_MIN_ITEMS,
            'default_max_items': DEFAULT_MAX_ITEMS,
            'for_preview': True
        },
        'editor': {
            'history_limit': 50
        },
        'generation': {
            'max_attempts': 3,
            'retry_delay': 1.0,
            'default_count': 1,
            'enable_fallback': True
        },
        'ui': {
            'page_title': 'JSON Schema Builder',
            'default_template': 'user'
        }
    }


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load application configuration.

    Missing, empty or unreadable files fall back to the defaults; the
    problem is logged, never raised.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

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

    except (yaml.YAMLError, IOError, OSError) as e:
        log_error_with_context(ConfigurationLoadError(config_path, e), "configuration loading")
        logger.info("Using default configuration")
        return default_config


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration structure and value ranges.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ['app', 'logging', 'preview', 'editor', 'generation', 'ui']

    for section in required_sections:
        if section not in config:
            logger.warning(f"Missing required configuration section: {section}")
            return False

    app = config.get('app', {})
    if 'name' not in app or 'version' not in app:
        logger.warning("Missing required app configuration (name or version)")
        return False

    level = config.get('logging', {}).get('level', 'INFO')
    if not isinstance(level, str) or level.upper() not in LOGGING_LEVELS:
        logger.warning(f"Unknown logging level: {level}")
        return False

    preview = config.get('preview', {})
    try:
        min_items = int(preview.get('default_min_items', DEFAULT_MIN_ITEMS))
        max_items = int(preview.get('default_max_items', DEFAULT_MAX_ITEMS))
    except (ValueError, TypeError):
        logger.warning("Preview item defaults must be valid integers")
        return False
    if min_items < 0 or max_items < 0:
        logger.warning("Preview item defaults must not be negative")
        return False

    try:
        history_limit = int(config.get('editor', {}).get('history_limit', 50))
    except (ValueError, TypeError):
        logger.warning("history_limit must be a valid integer")
        return False
    if history_limit <= 0:
        logger.warning("history_limit must be positive")
        return False

    try:
        max_attempts = int(config.get('generation', {}).get('max_attempts', 3))
    except (ValueError, TypeError):
        logger.warning("max_attempts must be a valid integer")
        return False
    if max_attempts <= 0:
        logger.warning("max_attempts must be positive")
        return False

    return True


def get_config_value(config: Dict[str, Any], section: str, key: str, default: Any = None) -> Any:
    """
    Get a specific configuration value.

    Args:
        config: Configuration dictionary
        section: Configuration section (e.g., 'preview', 'ui')
        key: Configuration key within section
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    section_values = config.get(section) or {}
    if not isinstance(section_values, dict):
        return default
    return section_values.get(key, default)


def get_preview_options(config: Dict[str, Any], **overrides: Any) -> PreviewOptions:
    """Build PreviewOptions from the ``preview`` section; keyword overrides win."""
    values = {
        'for_preview': bool(get_config_value(config, 'preview', 'for_preview', True)),
        'default_min_items': int(get_config_value(config, 'preview', 'default_min_items', DEFAULT_MIN_ITEMS)),
        'default_max_items': int(get_config_value(config, 'preview', 'default_max_items', DEFAULT_MAX_ITEMS)),
    }
    values.update(overrides)
    return PreviewOptions(**values)


LOGGING_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}


def get_logging_level(level_str: str) -> int:
    """Map string logging level to logging constant."""
    return LOGGING_LEVELS.get(str(level_str).upper(), logging.INFO)


def configure_logging(config: Dict[str, Any]) -> int:
    """
    Configure root logging from the ``logging`` section.

    Returns:
        The numeric level that was applied
    """
    level_str = get_config_value(config, 'logging', 'level', 'INFO')
    log_format = get_config_value(config, 'logging', 'format',
                                  get_default_config()['logging']['format'])
    level = get_logging_level(level_str)
    logging.basicConfig(level=level, format=log_format)
    logger.info(f"Logging configured to level: {level_str}")
    return level


def save_config(config: Dict[str, Any], config_path: Optional[Path] = None) -> bool:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary to save
        config_path: Optional path to save to (defaults to config.yaml)

    Returns:
        True if save was successful, False otherwise
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config, f, default_flow_style=False, indent=2, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")
        return True

    except (IOError, OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to save configuration to {config_path}: {e}")
        return False
