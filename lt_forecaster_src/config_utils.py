# lt_forecaster_src/config_utils.py

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "forecaster.yaml"

# Initialize the global configuration mapping
config_manager: Optional[Dict[str, Any]] = None

REQUIRED_SECTIONS = ["data", "model", "evaluation", "windows", "auxiliary"]


def validate_configuration(config: Dict[str, Any]) -> Dict[str, str]:
    """
    Check a loaded configuration mapping for missing or malformed sections.

    Parameters
    ----------
    config : Dict[str, Any]
        Parsed YAML configuration

    Returns
    -------
    Dict[str, str]
        Mapping of section name to problem description (empty when valid)
    """
    errors: Dict[str, str] = {}
    for section in REQUIRED_SECTIONS:
        if section not in config:
            errors[section] = "section missing"

    windows = config.get("windows")
    if windows is not None:
        if not isinstance(windows, list):
            errors["windows"] = "must be a list of {name, train, test} entries"
        else:
            for i, w in enumerate(windows):
                if not isinstance(w, dict) or not {"name", "train", "test"} <= set(w):
                    errors["windows"] = f"entry {i} must define name, train and test"
                    break

    threshold = config.get("auxiliary", {}).get("threshold") if isinstance(config.get("auxiliary"), dict) else None
    if threshold is not None and not (0.0 < float(threshold) < 1.0):
        errors["auxiliary"] = f"threshold must lie in (0, 1), got {threshold}"
    return errors


def initialize_config(config_path: Optional[Path] = None, force: bool = False) -> None:
    """
    Initializes the global configuration mapping from a YAML file.
    If the file is missing or cannot be parsed, it logs the problem and proceeds
    with default settings.
    """
    global config_manager
    if config_manager is not None and not force:
        return

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.is_file():
        logger.warning("Configuration file not found: %s - using defaults", path)
        config_manager = None
        return

    try:
        with path.open("r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load configuration %s: %s. Using defaults.", path, e)
        config_manager = None
        return

    validation_errors = validate_configuration(loaded)
    if validation_errors:
        logger.warning("Configuration validation warnings: %s", validation_errors)
    config_manager = loaded
    logger.info("Loaded configuration from %s", path)


def reset_config() -> None:
    """Drop the loaded configuration so the next lookup falls back to defaults."""
    global config_manager
    config_manager = None


def _lookup(config: Dict[str, Any], key_path: str) -> Any:
    node: Any = config
    for part in key_path.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def get_config_value(key_path: str, default=None, args=None, cli_param=None):
    """
    Retrieves a configuration value, providing support for command-line overrides.
    The function prioritizes values in the following order:
    1. CLI argument (if provided)
    2. Configuration file
    3. Default value
    """
    # First priority: CLI argument
    if args and cli_param and hasattr(args, cli_param):
        cli_value = getattr(args, cli_param)
        if cli_value is not None:
            return cli_value

    # Second priority: Configuration file
    if config_manager:
        config_value = _lookup(config_manager, key_path)
        if config_value is not None:
            return config_value
        logger.debug("Config key '%s' not set; using default", key_path)

    # Third priority: Default value
    return default
