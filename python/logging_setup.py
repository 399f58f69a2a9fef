"""
Logging setup for the Cert News Risk Analysis System

Applies the `logging` section of config.yaml to the root logger so that
every module logger (logging.getLogger(__name__)) shares the same handlers.
"""

import logging
from pathlib import Path
from typing import Optional

from config_manager import LoggingConfig


def configure_logging(config: Optional[LoggingConfig] = None, level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger

    Args:
        config: Logging section of the configuration
        level: Overrides config.level (e.g. 'DEBUG' for verbose runs)

    Returns:
        The configured root logger
    """
    config = config or LoggingConfig()
    log_level = getattr(logging, (level or config.level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    formatter = logging.Formatter(config.format)

    if config.console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
