"""Logging configuration for SplitLedger.

Logs go to stderr and, optionally, a file. The level comes from the
LOG_LEVEL env var (default: WARNING, so CLI output stays readable);
set LOG_LEVEL=DEBUG to trace the engine.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Map string level names to logging constants
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level(default: str = "WARNING") -> int:
    """Get logging level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (default: WARNING)
    """
    level_str = os.getenv("LOG_LEVEL", default).upper()
    return LOG_LEVEL_MAP.get(level_str, LOG_LEVEL_MAP.get(default.upper(), logging.WARNING))


def setup_logging(log_file: Optional[str] = None, level: Optional[int] = None) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        log_file: Optional path of a log file (parent directories are created)
        level: Explicit level; falls back to LOG_LEVEL

    Returns:
        The "splitledger" logger, for entry points that log directly
    """
    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    log_level = level if level is not None else get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return logging.getLogger("splitledger")
