"""
Logging setup shared by the CLI entry points.

Usage:
    from feed_pipeline.common.logs import setup_logging

    logger = setup_logging(verbose=True, log_file="logs/sync.log")
    logger.info("started")

Library modules only call ``logging.getLogger(__name__)``; handlers are
attached once here, on the ``feed_pipeline`` root logger.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "feed_pipeline"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Configure the package logger with a console handler and an optional file handler.

    Args:
        verbose: If True, log DEBUG and above (per-URL transitions).
        log_file: Optional path of a log file; parent directories are created.
        level: Base level when not verbose.

    Returns:
        The configured ``feed_pipeline`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)

    # Avoid adding multiple handlers if already configured
    if logger.handlers:
        return logger

    effective = logging.DEBUG if verbose else level
    logger.setLevel(effective)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(effective)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(effective)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
