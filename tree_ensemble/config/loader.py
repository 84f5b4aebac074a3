# tree_ensemble/config/loader.py
"""Parameter file loading.

Loads boosting parameters from YAML or JSON files, applies environment
variable overrides, and writes parameter files back out.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .params import BoosterParams, ENV_PREFIX
from ..utils.logger import get_logger
from ..utils.exceptions import ConfigurationError, handle_and_reraise

logger = get_logger(__name__)

_YAML_SUFFIXES = ('.yaml', '.yml')


def parse_env_value(value: str) -> Any:
    """Parse an environment variable string into a Python value.

    Args:
        value: Raw environment string

    Returns:
        bool, int, float, or the original string
    """
    lowered = value.strip().lower()
    if lowered in ('true', 'yes', 'on'):
        return True
    if lowered in ('false', 'no', 'off'):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        return value


def apply_environment_overrides(
    config: Dict[str, Any],
    prefix: str = ENV_PREFIX
) -> Dict[str, Any]:
    """Return a copy of ``config`` with environment overrides applied.

    Args:
        config: Parameter dictionary
        prefix: Environment variable prefix

    Returns:
        New dictionary including overrides
    """
    overridden = dict(config)
    for env_name, env_value in os.environ.items():
        if env_name.startswith(prefix) and len(env_name) > len(prefix):
            key = env_name[len(prefix):].lower()
            overridden[key] = parse_env_value(env_value)
            logger.debug(f"Applied environment override: {key}")
    return overridden


def load_yaml(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML or JSON file into a dictionary.

    Args:
        file_path: Path to the file

    Returns:
        Parsed dictionary

    Raises:
        ConfigurationError: If the file cannot be read or does not hold a mapping
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {file_path}",
            error_code="CONFIG_NOT_FOUND",
            context={'path': str(file_path)}
        )

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            if file_path.suffix.lower() == '.json':
                config = json.load(f)
            else:
                config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        handle_and_reraise(
            e, ConfigurationError,
            f"Failed to parse configuration file: {file_path}",
            error_code="CONFIG_PARSE_FAILED",
            context={'path': str(file_path)}
        )

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Configuration file must contain a dictionary, got {type(config).__name__}",
            error_code="CONFIG_NOT_MAPPING",
            context={'path': str(file_path)}
        )

    logger.debug(f"Loaded configuration from {file_path}")
    return config


def load_params(
    file_path: Union[str, Path],
    section: Optional[str] = None,
    allow_environment_override: bool = True
) -> BoosterParams:
    """Load boosting parameters from a YAML/JSON file.

    Args:
        file_path: Path to configuration file
        section: Optional top-level key holding the parameters
        allow_environment_override: Whether ``TREE_ENSEMBLE_*`` variables override file values

    Returns:
        Validated BoosterParams

    Example:
        >>> params = load_params("config/booster.yaml", section="params")
    """
    config = load_yaml(file_path)

    if section is not None:
        if section not in config or not isinstance(config[section], dict):
            raise ConfigurationError(
                f"Section '{section}' not found in {file_path}",
                error_code="CONFIG_SECTION_MISSING",
                context={'path': str(file_path), 'section': section}
            )
        config = config[section]

    if allow_environment_override:
        config = apply_environment_overrides(config)

    params = BoosterParams(config)
    params.validate()
    logger.info(f"Loaded {len(params)} parameters from {Path(file_path).name}")
    return params


def save_params(params: Union[BoosterParams, Mapping[str, Any]], file_path: Union[str, Path]) -> None:
    """Write parameters to a YAML or JSON file (chosen by suffix).

    Args:
        params: Parameters to save
        file_path: Destination path
    """
    file_path = Path(file_path)
    data = params.to_dict() if isinstance(params, BoosterParams) else dict(params)

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            if file_path.suffix.lower() in _YAML_SUFFIXES:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(data, f, indent=2)
    except (OSError, yaml.YAMLError, TypeError) as e:
        handle_and_reraise(
            e, ConfigurationError,
            f"Failed to save configuration to {file_path}",
            error_code="CONFIG_SAVE_FAILED",
            context={'path': str(file_path)}
        )

    logger.info(f"Saved parameters to {file_path}")
