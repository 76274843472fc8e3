# installer/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the installer.

Handles loading settings from Pydantic model defaults, environment files,
environment variables, a YAML file and command-line overrides, applying
this order of precedence (lowest first):
1. Pydantic Model Defaults
2. Environment file (--env-file) and MONGO_NODE_* environment variables
3. YAML Configuration File
4. Command-Line Arguments
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from installer.config_models import AppSettings
from installer.exceptions import ProvisioningError

module_logger = logging.getLogger(__name__)


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates a dictionary `source` with values from another dictionary
    `overrides`. Nested dictionaries are merged key by key; None values in
    `overrides` never replace an existing value.

    Returns:
        The updated `source` dictionary.
    """
    for key, value in overrides.items():
        if isinstance(value, dict):
            current = source.get(key)
            source[key] = _deep_update(
                current if isinstance(current, dict) else {}, value
            )
        elif value is not None:
            source[key] = value
    return source


def load_yaml_config(
    config_file_path: Optional[str],
    current_logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """
    Read a YAML configuration file into a dictionary.

    A missing path or a file that is not a mapping yields an empty dictionary;
    unreadable or unparsable files are reported and ignored.
    """
    logger_to_use = current_logger if current_logger else module_logger
    if not config_file_path:
        return {}

    yaml_config_path = Path(config_file_path)
    if not yaml_config_path.is_file():
        logger_to_use.info(
            f"Configuration file '{yaml_config_path}' not found. Using defaults, environment variables, and CLI args."
        )
        return {}

    try:
        with open(yaml_config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        logger_to_use.warning(
            f"Could not read config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data and isinstance(yaml_data, dict):
        logger_to_use.info(f"Loaded configuration from {yaml_config_path}")
        return yaml_data
    if yaml_data is not None:
        logger_to_use.warning(
            f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
    return {}


def load_app_settings(
    cli_overrides: Optional[Dict[str, Any]] = None,
    config_file_path: Optional[str] = None,
    env_file: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings.

    Args:
        cli_overrides: Nested dictionary of values given on the command line,
            e.g. {"node": {"instance_count": 3}}. None values are ignored.
        config_file_path: Optional path to a YAML configuration file.
        env_file: Optional dotenv-style file with MONGO_NODE_* settings.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        ProvisioningError: If env_file does not exist or the resulting
            configuration does not validate.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if env_file is not None:
        if not Path(env_file).is_file():
            logger_to_use.error(
                f"BAD ARGUMENT. Cannot find environment settings file at {env_file}"
            )
            raise ProvisioningError(
                f"Environment settings file not found: {env_file}"
            )
        logger_to_use.info("Successfully sourced environment-specific settings")

    # Init kwargs outrank environment sources; pydantic-settings merges
    # nested sections, so partial sections keep their environment values.
    merged: Dict[str, Any] = {}
    _deep_update(merged, load_yaml_config(config_file_path, logger_to_use))
    if cli_overrides:
        _deep_update(merged, cli_overrides)

    try:
        final_settings = AppSettings(_env_file=env_file, **merged)
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise ProvisioningError(f"Configuration error: {e}") from e

    logger_to_use.debug("Successfully loaded and validated application settings")
    return final_settings
