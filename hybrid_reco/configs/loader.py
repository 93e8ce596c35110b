"""
Configuration loading and validation.

This module handles loading of YAML configuration files and
validates that all scoring parameters are in range.
"""

import logging
from pathlib import Path
from typing import Dict, Any, List

import yaml

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ["global", "data", "scoring", "fallback", "batch"]


def load_config(filepath: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        filepath: Path to the YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If the file is empty
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    logger.info(f"Loading configuration from {filepath}")
    with open(filepath, "r") as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError(f"Configuration file is empty: {filepath}")

    return config


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration and return list of warnings/errors.

    Args:
        config: Configuration dictionary

    Returns:
        List of warning/error messages (empty if valid)
    """
    issues = []

    for section in REQUIRED_SECTIONS:
        if section not in config:
            issues.append(f"Missing required section: {section}")

    # Check data paths
    if "data" in config:
        data = config["data"] or {}
        if "path" not in (data.get("interactions") or {}):
            issues.append("Missing data.interactions.path")

    # Check scoring parameters
    if "scoring" in config:
        scoring = config["scoring"] or {}
        for key in ["neighbors", "top_n", "oversample_factor"]:
            if key in scoring and not _is_positive_int(scoring[key]):
                issues.append(f"scoring.{key} must be a positive integer, got {scoring[key]}")
        alpha = scoring.get("alpha", 0.6)
        if not isinstance(alpha, (int, float)) or not 0 <= alpha <= 1:
            issues.append(f"Scoring alpha must be in [0, 1], got {alpha}")

    # Check fallback policy
    if "fallback" in config:
        fallback = config["fallback"] or {}
        mode = fallback.get("mode", "fixed")
        if mode not in ["fixed", "below_personalized"]:
            issues.append(f"Unknown fallback mode: {mode}")
        score = fallback.get("score", 0.5)
        if not isinstance(score, (int, float)) or not 0 < score <= 1:
            issues.append(f"Fallback score must be in (0, 1], got {score}")

    # Check batch settings
    if "batch" in config:
        batch = config["batch"] or {}
        max_workers = batch.get("max_workers")
        if max_workers is not None and not _is_positive_int(max_workers):
            issues.append(f"batch.max_workers must be a positive integer, got {max_workers}")
        timeout = batch.get("task_timeout_seconds")
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            issues.append(f"batch.task_timeout_seconds must be positive, got {timeout}")

    # Check output format
    output_format = get_config_value(config, "output.format", "json")
    if output_format not in ["json", "csv"]:
        issues.append(f"Unknown output format: {output_format}")

    return issues


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "scoring.alpha")
        default: Default value if path doesn't exist

    Returns:
        Configuration value or default
    """
    keys = path.split(".")
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value
