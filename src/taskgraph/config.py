"""Configuration loading and logging setup."""

import logging
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/default.yaml")


def load_config(config_path: Optional[Path] = None) -> dict:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the file (default: config/default.yaml)

    Returns:
        Configuration dict; empty when the file is missing or unreadable
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning(f"Config file not found at {config_path}, using defaults")
        return {}

    try:
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config {config_path}: {e}")
        return {}


def setup_logging(config: dict) -> None:
    """Configure root logging from the ``logging`` config section."""
    log_config = config.get("logging", {})
    log_level = log_config.get("level", "INFO")
    log_file = log_config.get("file", "./.taskgraph/logs/taskgraph.log")

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler() if log_config.get("console", False) else logging.NullHandler(),
        ],
    )
