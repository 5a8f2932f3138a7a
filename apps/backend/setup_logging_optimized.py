import logging
from typing import Optional

from config.logging_config import apply_logging_config, get_logging_config


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger for the deck pipeline.

    - Picks format and default level from the environment profile
    - An explicit ``level`` overrides the profile level
    - Ensures a single StreamHandler is attached
    """
    config = get_logging_config()
    if level:
        config["default_level"] = level.upper()
    try:
        apply_logging_config(config)
    except (AttributeError, ValueError):
        logging.getLogger().setLevel(logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger after ensuring logging is initialized."""
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
