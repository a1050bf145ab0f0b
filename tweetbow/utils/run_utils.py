"""
Run-level helpers shared by the bag-of-words workflow.

This module centralizes common functionality used across the project:

- loading the pipeline configuration (config/pipeline.yaml)
- ensuring directories exist before writing files
- constructing loggers that respect the config's logging settings

The workflow module, the run script and the tests all rely on these
utilities.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import yaml


DEFAULT_PIPELINE_CONFIG_PATH = "config/pipeline.yaml"

REQUIRED_SECTIONS = (
    "corpus",
    "tokenize",
    "stopwords",
    "collocations",
    "stemming",
    "trim",
)


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------


def _load_yaml(path: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file and return it as a dictionary.

    Parameters
    ----------
    path : str
        Path to the YAML file.

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content.

    Raises
    ------
    FileNotFoundError
        If the YAML file does not exist.
    ValueError
        If the YAML file is empty or does not hold a mapping.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)

    if cfg is None or not isinstance(cfg, dict):
        raise ValueError(f"Config file is empty or invalid: {path}")

    return cfg


def load_pipeline_config(
    config_path: str = DEFAULT_PIPELINE_CONFIG_PATH,
) -> Dict[str, Any]:
    """
    Load and return the full pipeline configuration dictionary.

    Parameters
    ----------
    config_path : str
        Path to the pipeline YAML configuration file.

    Returns
    -------
    Dict[str, Any]
        Parsed configuration with sections such as "corpus", "tokenize",
        "stopwords", "collocations", "stemming", "trim", "grouping",
        "frequency", "paths", "logging" and "save".

    Raises
    ------
    KeyError
        If one of the required stage sections is missing.
    """
    cfg = _load_yaml(config_path)

    for section in REQUIRED_SECTIONS:
        if section not in cfg:
            raise KeyError(
                f'Missing "{section}" section in pipeline config: {config_path}'
            )

    return cfg


def get_section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a config section as a dict, treating a missing or null section as empty."""
    return cfg.get(name, {}) or {}


# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------


def ensure_dir_exists(path: str) -> None:
    """Create ``path`` (and its parents) unless it is empty or already there."""
    if path:
        os.makedirs(path, exist_ok=True)


# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------


PACKAGE_LOGGER_NAME = "tweetbow"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_log_level(level: Any) -> int:
    """
    Turn a config log level ("info", "WARNING", 20, ...) into a logging
    constant. Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO


def _log_file_path(config: Dict[str, Any], log_file_suffix: Optional[str]) -> str:
    logging_cfg = get_section(config, "logging")
    logs_dir = get_section(config, "paths").get("logs_dir", "outputs/logs")
    prefix = logging_cfg.get("file_prefix", "bag_of_words")
    stem = f"{prefix}_{log_file_suffix}" if log_file_suffix else prefix
    return os.path.join(logs_dir, f"{stem}.log")


def configure_logging(
    config: Dict[str, Any],
    log_file_suffix: Optional[str] = None,
) -> logging.Logger:
    """
    Install console / file handlers on the package logger.

    Every module logger under ``tweetbow.`` propagates here, so stage
    messages (matrix built, features trimmed, documents skipped) reach the
    same console and log file as the workflow's own messages. Calling this
    again replaces the previous handlers.

    Parameters
    ----------
    config : Dict[str, Any]
        Pipeline configuration; its "logging" and "paths" sections are read.
    log_file_suffix : Optional[str]
        Optional suffix appended to the log file name (e.g., "bow").

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    logging_cfg = get_section(config, "logging")
    level = _parse_log_level(logging_cfg.get("level", "INFO"))

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if bool(logging_cfg.get("to_file", True)):
        path = _log_file_path(config, log_file_suffix)
        ensure_dir_exists(os.path.dirname(path))
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.setLevel(level)
    package_logger.propagate = False
    return package_logger


def get_logger(
    name: str,
    config: Dict[str, Any],
    log_file_suffix: Optional[str] = None,
) -> logging.Logger:
    """
    Configure package logging from ``config`` and return a named logger.

    Names outside the package are placed under it ("bag_of_words" becomes
    "tweetbow.bag_of_words") so that they share the package handlers.
    """
    configure_logging(config, log_file_suffix=log_file_suffix)
    if name != PACKAGE_LOGGER_NAME and not name.startswith(PACKAGE_LOGGER_NAME + "."):
        name = f"{PACKAGE_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
