"""
Logging configuration for SiteProof.
Console output goes through rich; an optional rotating file keeps full detail.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    level: int | str = logging.INFO,
    log_dir: str | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: Logging level (name or number)
        log_dir: Directory for a rotating log file. No file is written when None.
        console: Rich console to render to (defaults to stderr)

    Returns:
        The root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    rich_handler.setLevel(level)
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))
    logger.addHandler(rich_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_filename = os.path.join(
            log_dir, f"siteproof_{datetime.now().strftime('%Y%m%d')}.log"
        )
        file_handler = RotatingFileHandler(
            log_filename,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)
        logger.debug("Log file: %s", log_filename)

    # The SDK's HTTP client is chatty at DEBUG
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logger