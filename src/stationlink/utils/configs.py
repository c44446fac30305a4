"""YAML configuration overrides.

Precedence, highest first: CLI flags (draccus), YAML file, dataclass
defaults.  A YAML value is only applied to fields still at their default, so
an explicit CLI flag always wins.
"""
import dataclasses
import logging
import os
from typing import Any

import yaml

logger = logging.getLogger(__name__)


def load_yaml_config(config_file: str) -> dict:
    """
    Load YAML configuration file with error handling.

    Args:
        config_file: Path to YAML configuration file

    Returns:
        Dictionary of configuration overrides (empty when missing or invalid)
    """
    if not config_file or not os.path.exists(config_file):
        logger.warning(f"Config file not found: {config_file} - using defaults")
        return {}

    try:
        with open(config_file, 'r') as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML config {config_file}: {e}")
        return {}
    except OSError as e:
        logger.error(f"Failed to load config {config_file}: {e}")
        return {}

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        logger.error(f"YAML config {config_file} must contain a mapping, got {type(config_data).__name__}")
        return {}
    logger.info(f"Loaded config overrides from: {config_file}")
    return config_data


def apply_section_override(target: Any, yaml_obj: dict, defaults: Any, section_name: str):
    """
    Apply YAML overrides to a config section while preserving CLI flag precedence.

    Args:
        target: The target config object to modify
        yaml_obj: The YAML overrides dictionary for this section
        defaults: The default config object for comparison
        section_name: Section name for logging purposes
    """
    for key, yaml_value in (yaml_obj or {}).items():
        if not hasattr(defaults, key):
            logger.warning(f"Unknown config key in YAML: {section_name}.{key}")
            continue

        # If current value equals default, it wasn't overridden by CLI
        if getattr(target, key) == getattr(defaults, key):
            setattr(target, key, yaml_value)
            logger.debug(f"Applied YAML override: {section_name}.{key} = {yaml_value}")
        else:
            logger.debug(f"Skipped YAML override (CLI precedence): {section_name}.{key}")


def apply_yaml_overrides(target_cfg: Any, yaml_overrides: dict, section: str = "station"):
    """Apply the *section* mapping of *yaml_overrides* to the dataclass *target_cfg*.

    The dataclass is validated again afterwards, so invalid YAML values raise
    ``ValueError`` like invalid CLI values do.
    """
    section_overrides = (yaml_overrides or {}).get(section, {})
    if not section_overrides:
        logger.debug(f"No '{section}' section found in YAML config")
        return target_cfg

    defaults = type(target_cfg)()
    apply_section_override(target_cfg, section_overrides, defaults, section)
    target_cfg.__post_init__()
    return target_cfg


def dataclass_summary(cfg: Any) -> str:
    return ", ".join(f"{f.name}={getattr(cfg, f.name)!r}" for f in dataclasses.fields(cfg))
