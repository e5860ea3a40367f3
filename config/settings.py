"""
Analysis Settings Manager
Handles loading, saving and validating analysis settings, and logging setup
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from config.constants import (
    ANALYSIS_CONFIG_FILE,
    DEFAULT_ANALYSIS_CONFIG,
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_LEVEL_ENV_VAR,
)
from models.project import AnalysisConfig, ProjectValidator

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_analysis_settings(path: Optional[PathLike] = None) -> AnalysisConfig:
    """
    Load analysis settings from a JSON file.

    Args:
        path: Settings file, defaults to ~/.construction_evm/analysis_config.json

    Returns:
        AnalysisConfig: Stored settings merged over the defaults

    A missing, unreadable or invalid file yields the default settings.
    """
    config_file = Path(path) if path is not None else ANALYSIS_CONFIG_FILE

    if not config_file.exists():
        logger.debug(f"Settings file {config_file} not found, using defaults")
        return AnalysisConfig.from_dict(DEFAULT_ANALYSIS_CONFIG)

    try:
        with open(config_file, 'r') as f:
            stored = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading settings from {config_file}: {e}, using defaults")
        return AnalysisConfig.from_dict(DEFAULT_ANALYSIS_CONFIG)

    if not isinstance(stored, dict):
        logger.error(f"Settings file {config_file} does not hold an object, using defaults")
        return AnalysisConfig.from_dict(DEFAULT_ANALYSIS_CONFIG)

    try:
        config = AnalysisConfig.from_dict(stored)
    except TypeError as e:
        logger.error(f"Invalid settings in {config_file}: {e}, using defaults")
        return AnalysisConfig.from_dict(DEFAULT_ANALYSIS_CONFIG)

    problems = ProjectValidator().validate_config(config)
    if problems:
        logger.error(f"Invalid settings in {config_file}: {'; '.join(problems)}, using defaults")
        return AnalysisConfig.from_dict(DEFAULT_ANALYSIS_CONFIG)

    return config


def save_analysis_settings(config: AnalysisConfig, path: Optional[PathLike] = None) -> bool:
    """
    Save analysis settings to a JSON file.

    Returns:
        bool: True if save was successful, False otherwise
    """
    problems = ProjectValidator().validate_config(config)
    if problems:
        logger.error(f"Invalid settings, not saving: {'; '.join(problems)}")
        return False

    config_file = Path(path) if path is not None else ANALYSIS_CONFIG_FILE
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, 'w') as f:
            json.dump(config.to_dict(), f, indent=2)
    except OSError as e:
        logger.error(f"Error saving settings to {config_file}: {e}")
        return False

    logger.debug(f"Settings saved to {config_file}")
    return True


def resolve_log_level(level: Optional[str] = None) -> int:
    """Log level from the argument, the EVM_LOG_LEVEL variable, or INFO."""
    name = (level or os.environ.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        logger.warning(f"Unknown log level {name!r}, using {DEFAULT_LOG_LEVEL}")
        return logging.getLevelName(DEFAULT_LOG_LEVEL)
    return resolved


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for applications embedding the calculators."""
    resolved = resolve_log_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved)
