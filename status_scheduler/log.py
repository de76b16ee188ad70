"""Logging setup for the scheduler process."""

import logging
import sys
from pathlib import Path
from typing import Optional

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configure the package logger with a console and optional file handler.

    Args:
      level: Level name such as "DEBUG" or "info".
      log_file: Optional path; parent directories are created.

    Returns:
      The configured `status_scheduler` logger.
    """
    logger = logging.getLogger("status_scheduler")
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    # Idempotent: repeated calls replace handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(FORMAT, datefmt=DATEFMT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
