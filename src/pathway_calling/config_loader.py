"""
Configuration loading utilities for the pathway calling framework.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, List, Union
import logging

logger = logging.getLogger(__name__)

VALID_MODES = ["absolute", "percentile"]
VALID_KCDF = ["auto", "gaussian", "poisson"]
ABSOLUTE_KEYS = ["up_low", "up_high", "dn_low", "dn_high"]


def load_pathway_calling_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load pathway calling configuration from YAML file.

    Files listed under ``config_modules`` are merged in order on top of the
    defaults, then ``overrides`` from the main file are applied.

    Args:
        config_path: Path to main configuration file

    Returns:
        Merged configuration dictionary
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        main_config = yaml.safe_load(f) or {}

    config_dir = config_path.parent
    merged_config = get_default_pathway_calling_config()

    for module_name in main_config.get("config_modules", []):
        module_path = config_dir / module_name
        if module_path.exists():
            with open(module_path, "r", encoding="utf-8") as f:
                module_config = yaml.safe_load(f) or {}
            merged_config = _merge_configs(merged_config, module_config)
            logger.info(f"Loaded configuration module: {module_name}")
        else:
            logger.warning(f"Configuration module not found: {module_path}")

    # Sections written directly in the main file
    inline = {
        k: v
        for k, v in main_config.items()
        if k not in ("config_modules", "overrides")
    }
    if inline:
        merged_config = _merge_configs(merged_config, inline)

    overrides = main_config.get("overrides", {})
    if overrides:
        merged_config = _merge_configs(merged_config, overrides)
        logger.info("Applied configuration overrides")

    return merged_config


def _merge_configs(
    base_config: Dict[str, Any], override_config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively merge configuration dictionaries.

    Args:
        base_config: Base configuration dictionary
        override_config: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base_config.copy()

    for key, value in override_config.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def validate_pathway_calling_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate pathway calling configuration.

    Args:
        config: Configuration dictionary to validate

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    required_sections = ["scoring", "classification"]
    for section in required_sections:
        if section not in config:
            errors.append(f"Missing required configuration section: {section}")

    scoring = config.get("scoring", {})
    kcdf = scoring.get("kcdf", "auto")
    if kcdf not in VALID_KCDF:
        errors.append(f"Invalid kcdf: {kcdf}. Must be one of {VALID_KCDF}")
    min_size = scoring.get("min_size", 1)
    if not isinstance(min_size, int) or min_size < 1:
        errors.append("scoring.min_size must be a positive integer")

    classification = config.get("classification", {})
    mode = classification.get("mode")
    if "classification" in config:
        if not mode:
            errors.append("Classification mode not specified")
        elif mode not in VALID_MODES:
            errors.append(f"Unsupported classification mode: {mode}")

    if mode == "percentile":
        percent = classification.get("percent_thresh", 25)
        if isinstance(percent, bool) or not isinstance(percent, (int, float)):
            errors.append("classification.percent_thresh must be a number")
        elif not 0 <= percent <= 50:
            errors.append("classification.percent_thresh must be between 0 and 50")

    if mode == "absolute":
        absolute = classification.get("absolute", {})
        for key in ABSOLUTE_KEYS:
            if key not in absolute:
                errors.append(f"Missing required absolute threshold: {key}")

    return errors


def get_default_pathway_calling_config() -> Dict[str, Any]:
    """
    Get default pathway calling configuration.

    Returns:
        Default configuration dictionary
    """
    return {
        "scoring": {
            "method": "gsva",
            "kcdf": "auto",
            "tau": 1.0,
            "mx_diff": True,
            "min_size": 1,
            "show_progress": False,
        },
        "classification": {
            "mode": "percentile",
            "percent_thresh": 25,
            "absolute": {
                "up_low": -0.25,
                "up_high": 0.25,
                "dn_low": -0.25,
                "dn_high": 0.35,
            },
        },
        "evaluation": {
            "show_stats": True,
            "generate_report": True,
            "visualization": {
                "figure_size": [10, 4],
                "dpi": 300,
            },
        },
        "output": {
            "save_scores": True,
            "save_plots": True,
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }
