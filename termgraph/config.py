#!/usr/bin/env python3
"""
Configuration handling for the termgraph package.
"""

import os
import json
import yaml
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONFIG = {
    "relevant_subset": None,
    "relevant_subontology": None,
    "n_jobs": 1,
    "show_progress": False,
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Not a boolean: {value!r}")


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from a file.

    Args:
        config_path: Path to the configuration file (YAML or JSON)

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file format is not supported or invalid
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    file_ext = os.path.splitext(config_path)[1].lower()

    try:
        if file_ext == '.json':
            with open(config_path, 'r') as f:
                config = json.load(f)
        elif file_ext in ['.yaml', '.yml']:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f)
        else:
            raise ValueError(f"Unsupported configuration file format: {file_ext}")
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Error loading configuration: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration must be a mapping, got {type(config).__name__}")
    return config


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate configuration values and set defaults for missing values.

    Args:
        config: Configuration dictionary to validate

    Returns:
        Validated configuration dictionary
    """
    validated = DEFAULT_CONFIG.copy()

    for key, value in config.items():
        if key not in validated:
            logger.warning(f"Unknown configuration parameter: {key}")
            continue

        if key == "n_jobs":
            try:
                value = int(value)
            except (ValueError, TypeError):
                logger.warning(f"Invalid type for {key}, expected int. Using default: {validated[key]}")
                continue
            # joblib accepts negative values (-1 = all cores) but not 0
            if value == 0:
                logger.warning(f"Invalid value for {key}: 0. Using default: {validated[key]}")
                continue

        elif key == "show_progress":
            try:
                value = _to_bool(value)
            except ValueError:
                logger.warning(f"Invalid type for {key}, expected bool. Using default: {validated[key]}")
                continue

        elif value is not None and not isinstance(value, str):
            logger.warning(f"Invalid type for {key}, expected str. Using default: {validated[key]}")
            continue

        validated[key] = value

    return validated


def load_from_env(prefix: str = "TERMGRAPH_") -> Dict[str, Any]:
    """
    Load configuration from environment variables.

    Args:
        prefix: Prefix for environment variables

    Returns:
        Dictionary with configuration from environment variables
    """
    config = {}

    env_mappings = {
        f"{prefix}RELEVANT_SUBSET": "relevant_subset",
        f"{prefix}RELEVANT_SUBONTOLOGY": "relevant_subontology",
        f"{prefix}N_JOBS": "n_jobs",
        f"{prefix}SHOW_PROGRESS": "show_progress",
    }

    for env_var, config_key in env_mappings.items():
        if env_var in os.environ:
            value = os.environ[env_var]

            try:
                if config_key == "n_jobs":
                    value = int(value)
                elif config_key == "show_progress":
                    value = _to_bool(value)
            except ValueError:
                logger.warning(f"Invalid value for {env_var}: {value}")
                continue

            config[config_key] = value

    return config


def save_config(config: Dict[str, Any], config_path: str) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration dictionary to save
        config_path: Path to save the configuration file
    """
    os.makedirs(os.path.dirname(os.path.abspath(config_path)), exist_ok=True)

    file_ext = os.path.splitext(config_path)[1].lower()

    try:
        if file_ext == '.json':
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)
        elif file_ext in ['.yaml', '.yml']:
            with open(config_path, 'w') as f:
                yaml.dump(config, f, default_flow_style=False)
        else:
            raise ValueError(f"Unsupported configuration file format: {file_ext}")

        logger.info(f"Configuration saved to {config_path}")
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Error saving configuration: {e}")


def get_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Get configuration from various sources, with precedence:
    1. Configuration file (if provided)
    2. Environment variables
    3. Default configuration

    Args:
        config_path: Path to configuration file (optional)

    Returns:
        Complete configuration dictionary
    """
    config = DEFAULT_CONFIG.copy()

    config.update(load_from_env())

    if config_path:
        try:
            file_config = load_config(config_path)
            config.update(file_config)
        except (FileNotFoundError, ValueError) as e:
            logger.warning(f"Error loading configuration file: {e}")

    return validate_config(config)
